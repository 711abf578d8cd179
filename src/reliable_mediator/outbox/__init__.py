"""Outbox pattern: transactional capture and at-least-once publishing."""

from .dispatcher import OutboxDispatcher
from .post_processor import OutboxPostProcessor
from .worker import OutboxWorker

__all__ = ["OutboxDispatcher", "OutboxPostProcessor", "OutboxWorker"]
