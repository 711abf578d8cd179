"""Correlation ID management for requests and the work they defer."""

from __future__ import annotations

import contextlib
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

# ContextVars so the id follows the request across awaits and spawned tasks.
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_causation_id: ContextVar[str | None] = ContextVar("causation_id", default=None)


def get_correlation_id() -> str | None:
    """Get current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID in context."""
    _correlation_id.set(correlation_id)


def get_causation_id() -> str | None:
    """Get current causation ID from context."""
    return _causation_id.get()


def set_causation_id(causation_id: str | None) -> None:
    """Set causation ID in context."""
    _causation_id.set(causation_id)


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def get_context_vars() -> dict[str, str | None]:
    """Get all correlation context variables (for logging or record metadata)."""
    return {
        "correlation_id": get_correlation_id(),
        "causation_id": get_causation_id(),
    }


@contextlib.contextmanager
def correlation_scope(
    correlation_id: str | None, causation_id: str | None = None
) -> Iterator[None]:
    """Set the ids for the duration of the block, then restore the previous ones.

    The causation id is left untouched when *causation_id* is ``None``.
    """
    corr_token = _correlation_id.set(correlation_id)
    cause_token = _causation_id.set(causation_id) if causation_id else None
    try:
        yield
    finally:
        if cause_token is not None:
            _causation_id.reset(cause_token)
        _correlation_id.reset(corr_token)
