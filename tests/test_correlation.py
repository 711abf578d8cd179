from __future__ import annotations

import asyncio

import pytest

from reliable_mediator.correlation import (
    correlation_scope,
    generate_correlation_id,
    get_causation_id,
    get_context_vars,
    get_correlation_id,
    set_correlation_id,
)


def test_scope_sets_and_restores_ids() -> None:
    set_correlation_id("outer")

    with correlation_scope("inner", causation_id="cause-1"):
        assert get_context_vars() == {
            "correlation_id": "inner",
            "causation_id": "cause-1",
        }

    assert get_correlation_id() == "outer"
    assert get_causation_id() is None
    set_correlation_id(None)


def test_scope_without_causation_keeps_existing() -> None:
    with correlation_scope("a", causation_id="cause"):
        with correlation_scope("b"):
            assert get_causation_id() == "cause"
            assert get_correlation_id() == "b"
        assert get_correlation_id() == "a"


def test_generated_ids_are_unique() -> None:
    assert generate_correlation_id() != generate_correlation_id()


@pytest.mark.asyncio()
async def test_id_follows_spawned_tasks() -> None:
    async def read() -> str | None:
        return get_correlation_id()

    with correlation_scope("task-corr"):
        task = asyncio.create_task(read())

    assert await task == "task-corr"
