"""Inbox pattern: idempotent request handling with response caching."""

from .middleware import InboxMiddleware
from .purge import InboxPurgeService
from .worker import InboxPurgeWorker

__all__ = ["InboxMiddleware", "InboxPurgeService", "InboxPurgeWorker"]
