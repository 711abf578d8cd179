"""HandlerRegistry — request type to handler mapping with conflict detection."""

from __future__ import annotations

import logging
from typing import Any

from ..primitives.exceptions import HandlerRegistrationError

logger = logging.getLogger("reliable_mediator.mediator")


class HandlerRegistry:
    """Single source of truth for which handler serves which request type.

    A handler may be registered as a class (instantiated per dispatch by the
    mediator's ``handler_factory``) or as a ready instance.

    **Conflict detection:** registering a second, different handler for the
    same request type raises :class:`HandlerRegistrationError`.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[Any], Any] = {}

    def register(self, request_type: type[Any], handler: Any) -> None:
        existing = self._handlers.get(request_type)
        if existing is not None and existing is not handler:
            msg = (
                f"Duplicate handler for {request_type.__name__}: "
                f"{_name(existing)} already registered, "
                f"cannot register {_name(handler)}"
            )
            raise HandlerRegistrationError(msg)
        self._handlers[request_type] = handler
        logger.debug(
            "Registered handler %s -> %s", request_type.__name__, _name(handler)
        )

    def get(self, request_type: type[Any]) -> Any | None:
        return self._handlers.get(request_type)

    def __contains__(self, request_type: object) -> bool:
        return request_type in self._handlers

    def get_registered_handlers(self) -> dict[str, str]:
        """Return a snapshot of all registered handlers (for debugging)."""
        return {k.__name__: _name(v) for k, v in self._handlers.items()}

    def clear(self) -> None:
        """Clear all registered handlers (testing utility)."""
        self._handlers.clear()


def _name(handler: Any) -> str:
    cls = handler if isinstance(handler, type) else type(handler)
    return cls.__name__
