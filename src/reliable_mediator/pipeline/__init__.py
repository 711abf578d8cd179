"""Minimal request pipeline the reliable-messaging hooks plug into."""

from .context import RequestContext
from .handler import RequestHandler
from .mediator import Mediator
from .pipeline import build_pipeline
from .registry import HandlerRegistry
from .request import HasNotifications, IdempotentRequest, Notification, Request

__all__ = [
    "HandlerRegistry",
    "HasNotifications",
    "IdempotentRequest",
    "Mediator",
    "Notification",
    "Request",
    "RequestContext",
    "RequestHandler",
    "build_pipeline",
]
