"""Scheduled delivery of requests back into the pipeline."""

from .dispatcher import ScheduledMessageDispatcher
from .service import ScheduledMessageService
from .worker import ScheduledMessageWorker

__all__ = [
    "ScheduledMessageDispatcher",
    "ScheduledMessageService",
    "ScheduledMessageWorker",
]
