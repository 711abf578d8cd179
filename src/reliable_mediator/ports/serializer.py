"""ISerializer — converts payloads to and from their stored text form."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ISerializer(Protocol):
    """Port for payload serialization keyed by a type token.

    The token is stored next to the content (``notification_type``,
    ``request_type``) and later used to rebuild an instance of the same type.
    """

    def type_token(self, obj_or_type: Any) -> str:
        """Return the stable token for an object or a class."""
        ...

    def serialize(self, obj: Any, type_hint: Any = None) -> str:
        """Encode *obj* as text, as *type_hint* when given (a class or an
        annotation such as ``list[Payment]``)."""
        ...

    def deserialize(self, type_token: str, content: str) -> Any:
        """Rebuild an instance of the type named by *type_token*."""
        ...

    def deserialize_as(self, type_hint: Any, content: str) -> Any:
        """Rebuild a value of *type_hint* (a class or an annotation)."""
        ...
