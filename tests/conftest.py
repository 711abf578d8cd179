from __future__ import annotations

from datetime import datetime, timezone

import pytest

from reliable_mediator.adapters.memory import (
    InMemoryInboxStore,
    InMemoryOutboxStore,
    InMemorySagaStore,
    InMemoryScheduledMessageStore,
    ManualClock,
)
from reliable_mediator.instrumentation import HookRegistry
from reliable_mediator.serialization import JsonSerializer

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(T0)


@pytest.fixture()
def serializer() -> JsonSerializer:
    return JsonSerializer()


@pytest.fixture()
def inbox_store(clock: ManualClock) -> InMemoryInboxStore:
    return InMemoryInboxStore(clock)


@pytest.fixture()
def outbox_store(clock: ManualClock) -> InMemoryOutboxStore:
    return InMemoryOutboxStore(clock)


@pytest.fixture()
def scheduled_store(clock: ManualClock) -> InMemoryScheduledMessageStore:
    return InMemoryScheduledMessageStore(clock)


@pytest.fixture()
def saga_store() -> InMemorySagaStore:
    return InMemorySagaStore()


@pytest.fixture()
def hook_registry() -> HookRegistry:
    return HookRegistry()
