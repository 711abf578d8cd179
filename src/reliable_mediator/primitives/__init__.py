"""Primitives: exceptions, results, clock, backoff."""

from __future__ import annotations

from .backoff import BackoffPolicy
from .clock import IClock, SystemClock
from .exceptions import (
    ConfigurationError,
    DuplicateRecordError,
    HandlerError,
    HandlerNotFoundError,
    HandlerRegistrationError,
    InvalidSagaTransitionError,
    PersistenceError,
    ReliableMessagingError,
    SagaError,
    SagaNotFoundError,
    SerializationError,
    StoreError,
)
from .result import (
    HANDLER_FAILED,
    INBOX_DESERIALIZATION_FAILED,
    INBOX_IN_PROGRESS,
    INBOX_MAX_RETRIES_EXCEEDED,
    INBOX_NOT_YET_RETRYABLE,
    MediatorError,
    RequestResult,
    ResultError,
)

__all__ = [
    "BackoffPolicy",
    "ConfigurationError",
    "DuplicateRecordError",
    "HANDLER_FAILED",
    "HandlerError",
    "HandlerNotFoundError",
    "HandlerRegistrationError",
    "IClock",
    "INBOX_DESERIALIZATION_FAILED",
    "INBOX_IN_PROGRESS",
    "INBOX_MAX_RETRIES_EXCEEDED",
    "INBOX_NOT_YET_RETRYABLE",
    "InvalidSagaTransitionError",
    "MediatorError",
    "PersistenceError",
    "ReliableMessagingError",
    "RequestResult",
    "ResultError",
    "SagaError",
    "SagaNotFoundError",
    "SerializationError",
    "StoreError",
    "SystemClock",
]
