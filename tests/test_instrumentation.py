from __future__ import annotations

from typing import Any

import pytest

from reliable_mediator.instrumentation import (
    HookRegistry,
    get_hook_registry,
    set_hook_registry,
)


class RecordingHook:
    def __init__(self, name: str, order: list[str]) -> None:
        self._name = name
        self._order = order

    async def __call__(
        self,
        _operation: str,
        _attributes: dict[str, Any],
        next_handler: Any,
    ) -> Any:
        self._order.append(f"before:{self._name}")
        result = await next_handler()
        self._order.append(f"after:{self._name}")
        return result


@pytest.mark.asyncio()
async def test_hook_registry_executes_in_priority_order() -> None:
    order: list[str] = []
    registry = HookRegistry()
    registry.register(RecordingHook("inner", order), priority=0)
    registry.register(RecordingHook("outer", order), priority=-10)

    async def _handler() -> str:
        order.append("handler")
        return "ok"

    result = await registry.execute_all("outbox.dispatch.batch", {}, _handler)
    assert result == "ok"
    assert order == [
        "before:outer",
        "before:inner",
        "handler",
        "after:inner",
        "after:outer",
    ]


@pytest.mark.asyncio()
async def test_hook_registry_glob_filter_and_disable() -> None:
    order: list[str] = []
    registry = HookRegistry()
    reg = registry.register(RecordingHook("outbox", order), operations=["outbox.*"])

    async def _handler() -> None:
        order.append("handler")

    await registry.execute_all("saga.recovery.scan", {}, _handler)
    assert order == ["handler"]

    order.clear()
    reg.enabled = False
    await registry.execute_all("outbox.dispatch.batch", {}, _handler)
    assert order == ["handler"]

    reg.enabled = True
    order.clear()
    await registry.execute_all("outbox.dispatch.batch", {}, _handler)
    assert order[0] == "before:outbox"

    registry.clear()
    assert registry._registrations == []  # noqa: SLF001


def test_context_registry_can_be_replaced() -> None:
    original = get_hook_registry()
    try:
        replacement = HookRegistry()
        set_hook_registry(replacement)
        assert get_hook_registry() is replacement
    finally:
        set_hook_registry(original)
