"""JsonSerializer — pydantic-backed JSON encoding keyed by type token."""

from __future__ import annotations

import importlib
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .primitives.exceptions import SerializationError

logger = logging.getLogger("reliable_mediator.serialization")


def type_token_for(cls: type[Any]) -> str:
    """Return the ``"module:QualName"`` token of *cls*."""
    return f"{cls.__module__}:{cls.__qualname__}"


class MessageTypeRegistry:
    """Explicit token → class mapping consulted before import-based lookup.

    Register classes whose token cannot be imported (local classes, renamed
    modules) or to pin a stable alias that survives refactoring::

        registry = MessageTypeRegistry()
        registry.register(OrderPlaced)
        registry.register(OrderPlaced, name="orders.OrderPlaced.v1")
    """

    def __init__(self) -> None:
        self._types: dict[str, type[Any]] = {}
        self._names: dict[type[Any], str] = {}

    def register(self, cls: type[Any], name: str | None = None) -> str:
        """Register *cls* under *name* (default: its type token)."""
        token = name or type_token_for(cls)
        self._types[token] = cls
        self._names[cls] = token
        return token

    def get(self, token: str) -> type[Any] | None:
        return self._types.get(token)

    def name_for(self, cls: type[Any]) -> str | None:
        return self._names.get(cls)

    def __contains__(self, token: object) -> bool:
        return token in self._types


class JsonSerializer:
    """Default :class:`~reliable_mediator.ports.serializer.ISerializer`.

    Works for pydantic models, dataclasses, ``TypedDict`` and builtin values.
    Unknown tokens and payloads that fail validation raise
    :class:`~reliable_mediator.primitives.exceptions.SerializationError`.
    """

    def __init__(self, registry: MessageTypeRegistry | None = None) -> None:
        self._registry = registry or MessageTypeRegistry()
        self._adapters: dict[Any, TypeAdapter[Any]] = {}

    @property
    def registry(self) -> MessageTypeRegistry:
        return self._registry

    def type_token(self, obj_or_type: Any) -> str:
        cls = obj_or_type if isinstance(obj_or_type, type) else type(obj_or_type)
        return self._registry.name_for(cls) or type_token_for(cls)

    def serialize(self, obj: Any, type_hint: Any = None) -> str:
        target = type(obj) if type_hint is None else type_hint
        try:
            return self._adapter(target).dump_json(obj).decode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(
                f"Cannot serialize {type(obj).__name__}: {e}",
                type_token=self.type_token(obj),
            ) from e

    def deserialize(self, type_token: str, content: str) -> Any:
        cls = self.resolve(type_token)
        try:
            return self._adapter(cls).validate_json(content)
        except ValidationError as e:
            raise SerializationError(
                f"Cannot deserialize {type_token}: {e}", type_token=type_token
            ) from e

    def deserialize_as(self, type_hint: Any, content: str) -> Any:
        """Validate *content* against an annotation such as ``list[Payment]``."""
        try:
            return self._adapter(type_hint).validate_json(content)
        except ValidationError as e:
            raise SerializationError(
                f"Cannot deserialize {type_hint!r}: {e}", type_token=repr(type_hint)
            ) from e

    def resolve(self, type_token: str) -> type[Any]:
        """Return the class for *type_token* (registry first, then import)."""
        cls = self._registry.get(type_token)
        if cls is not None:
            return cls

        module_name, sep, qualname = type_token.partition(":")
        if not sep or not module_name or not qualname:
            raise SerializationError(
                f"Malformed type token {type_token!r}", type_token=type_token
            )
        try:
            target: Any = importlib.import_module(module_name)
            for part in qualname.split("."):
                target = getattr(target, part)
        except (ImportError, AttributeError) as e:
            raise SerializationError(
                f"Type {type_token!r} not found", type_token=type_token
            ) from e
        if not isinstance(target, type):
            raise SerializationError(
                f"Token {type_token!r} does not name a class", type_token=type_token
            )
        logger.debug("Resolved type token %s by import", type_token)
        return target

    def _adapter(self, type_hint: Any) -> TypeAdapter[Any]:
        adapter = self._adapters.get(type_hint)
        if adapter is None:
            adapter = TypeAdapter(type_hint)
            self._adapters[type_hint] = adapter
        return adapter
