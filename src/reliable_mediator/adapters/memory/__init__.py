"""In-memory adapters for tests and single-process deployments."""

from .clock import ManualClock
from .inbox import InMemoryInboxStore
from .outbox import InMemoryOutboxStore
from .sagas import InMemorySagaStore
from .scheduling import InMemoryScheduledMessageStore
from .unit_of_work import InMemoryUnitOfWork, in_memory_unit_of_work_factory

__all__ = [
    "InMemoryInboxStore",
    "InMemoryOutboxStore",
    "InMemorySagaStore",
    "InMemoryScheduledMessageStore",
    "InMemoryUnitOfWork",
    "ManualClock",
    "in_memory_unit_of_work_factory",
]
