"""Exception hierarchy for reliable-mediator.

Expected business outcomes (cache hits, exhausted retries, handler failures)
travel as :class:`~reliable_mediator.primitives.result.RequestResult` values.
The exceptions below are reserved for programming errors and infrastructure
faults that callers must not silently ignore.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ReliableMessagingError(Exception):
    """Root exception for the whole package."""


class ConfigurationError(ReliableMessagingError):
    """Raised when components are wired with an inconsistent configuration."""


class HandlerError(ReliableMessagingError):
    """Base class for handler registration and lookup errors."""


class HandlerNotFoundError(HandlerError):
    """Raised when the mediator has no handler for a request type."""

    def __init__(self, request_type: type[object]) -> None:
        self.request_type = request_type
        super().__init__(f"No handler registered for request {request_type.__name__}")


class HandlerRegistrationError(HandlerError):
    """Raised when a second handler is registered for the same request type."""


class SerializationError(ReliableMessagingError):
    """Raised when a payload cannot be encoded or decoded.

    Also raised when a stored type token no longer resolves to a class.
    """

    def __init__(self, message: str, type_token: str | None = None) -> None:
        self.type_token = type_token
        super().__init__(message)


class PersistenceError(ReliableMessagingError):
    """Base class for persistence failures raised by store adapters."""


class StoreError(PersistenceError):
    """A store operation failed.

    Adapters wrap backend-specific exceptions in this type so the engine can
    propagate them uniformly. The engine never retries these inline.
    """


class DuplicateRecordError(PersistenceError):
    """Raised when a record with the same identity already exists."""

    def __init__(self, record_type: str, record_id: object) -> None:
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(f"{record_type} with id={record_id!r} already exists")


class SagaError(ReliableMessagingError):
    """Base class for saga coordination errors."""


class SagaNotFoundError(SagaError):
    """Raised when a saga id is unknown to the store."""

    def __init__(self, saga_id: str) -> None:
        self.saga_id = saga_id
        super().__init__(f"Saga with id={saga_id!r} not found")


class InvalidSagaTransitionError(SagaError):
    """Raised when a saga is asked to move to a status it cannot reach."""

    def __init__(
        self,
        saga_id: str,
        current: str,
        target: str,
        allowed: Iterable[str] = (),
    ) -> None:
        self.saga_id = saga_id
        self.current = current
        self.target = target
        allowed_list = sorted(allowed)
        msg = f"Saga {saga_id!r} cannot move from {current} to {target}"
        if allowed_list:
            msg += f" (allowed: {', '.join(allowed_list)})"
        else:
            msg += f" ({current} is terminal)"
        super().__init__(msg)
