"""Tagged result type returned by handlers, middleware and the mediator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ..utils import default_dict_factory
from .exceptions import ReliableMessagingError

T = TypeVar("T")

# ── Stable error codes ───────────────────────────────────────────────

INBOX_MAX_RETRIES_EXCEEDED = "inbox.max_retries_exceeded"
INBOX_NOT_YET_RETRYABLE = "inbox.not_yet_retryable"
INBOX_IN_PROGRESS = "inbox.in_progress"
INBOX_DESERIALIZATION_FAILED = "inbox.deserialization_failed"
HANDLER_FAILED = "mediator.handler_failed"

#: Codes that tell the caller to come back later rather than give up.
TRANSIENT_CODES = frozenset({INBOX_NOT_YET_RETRYABLE, INBOX_IN_PROGRESS})


@dataclass(frozen=True)
class MediatorError:
    """Structured description of an expected failure."""

    code: str
    message: str
    details: dict[str, object] = field(default_factory=default_dict_factory)

    @property
    def is_transient(self) -> bool:
        return self.code in TRANSIENT_CODES

    @classmethod
    def from_exception(
        cls, exc: BaseException, code: str = HANDLER_FAILED
    ) -> MediatorError:
        return cls(
            code=code,
            message=str(exc) or type(exc).__name__,
            details={"exception_type": type(exc).__name__},
        )


class ResultError(ReliableMessagingError):
    """Raised by :meth:`RequestResult.unwrap` on a failed result."""

    def __init__(self, error: MediatorError) -> None:
        self.error = error
        super().__init__(f"[{error.code}] {error.message}")


@dataclass(frozen=True)
class RequestResult(Generic[T]):
    """Either a success value or a :class:`MediatorError`, never both.

    ``notifications`` lets a handler hand domain events to the outbox
    post-processor alongside its result.
    """

    value: T | None = None
    error: MediatorError | None = None
    notifications: tuple[Any, ...] = ()

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @classmethod
    def success(cls, value: T, notifications: tuple[Any, ...] = ()) -> RequestResult[T]:
        return cls(value=value, notifications=tuple(notifications))

    @classmethod
    def failure(
        cls,
        error: MediatorError | str,
        message: str | None = None,
        **details: object,
    ) -> RequestResult[T]:
        """Build a failed result.

        Accepts either a ready :class:`MediatorError` or a ``code`` plus
        ``message`` and optional detail keyword arguments.
        """
        if isinstance(error, str):
            error = MediatorError(code=error, message=message or error, details=details)
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise :class:`ResultError`."""
        if self.error is not None:
            raise ResultError(self.error)
        return self.value  # type: ignore[return-value]
