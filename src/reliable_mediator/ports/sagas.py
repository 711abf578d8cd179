"""ISagaStore — persistence port for saga lifecycle state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from uuid import uuid4

if TYPE_CHECKING:
    from .unit_of_work import UnitOfWork


class SagaStatus(str, Enum):
    """Possible lifecycle states for a saga instance."""

    RUNNING = "RUNNING"
    COMPENSATING = "COMPENSATING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


#: Legal status moves. Statuses absent as keys are terminal.
SAGA_TRANSITIONS: dict[SagaStatus, frozenset[SagaStatus]] = {
    SagaStatus.RUNNING: frozenset(
        {SagaStatus.COMPLETED, SagaStatus.FAILED, SagaStatus.COMPENSATING}
    ),
    SagaStatus.COMPENSATING: frozenset({SagaStatus.COMPLETED, SagaStatus.FAILED}),
}

ACTIVE_SAGA_STATUSES = frozenset({SagaStatus.RUNNING, SagaStatus.COMPENSATING})


@dataclass
class SagaState:
    """Persisted state of one long-running multi-step operation."""

    saga_id: str = field(default_factory=lambda: str(uuid4()))
    saga_type: str = ""
    data: str = ""
    status: SagaStatus = SagaStatus.RUNNING
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_updated_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    completed_at: datetime | None = None
    error_message: str | None = None
    current_step: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status not in SAGA_TRANSITIONS

    def can_transition_to(self, target: SagaStatus) -> bool:
        return target in SAGA_TRANSITIONS.get(self.status, frozenset())

    def is_stuck(self, older_than: datetime) -> bool:
        return self.status in ACTIVE_SAGA_STATUSES and self.last_updated_at < older_than


@runtime_checkable
class ISagaStore(Protocol):
    """
    Port for saga state persistence.

    Infrastructure packages provide the real implementation.
    :class:`~reliable_mediator.adapters.memory.InMemorySagaStore` is available
    for testing.
    """

    async def get(self, saga_id: str) -> SagaState | None:
        """Return the saga with *saga_id*, if any."""
        ...

    async def add(self, state: SagaState, uow: UnitOfWork | None = None) -> None:
        """Stage a new saga."""
        ...

    async def update(self, state: SagaState, uow: UnitOfWork | None = None) -> None:
        """Stage the new state of an existing saga."""
        ...

    async def get_stuck(
        self, older_than: datetime, batch_size: int
    ) -> list[SagaState]:
        """Return Running/Compensating sagas last updated before *older_than*.

        Ordered by ``last_updated_at`` ascending, at most *batch_size*.
        """
        ...

    async def save(self, uow: UnitOfWork | None = None) -> None:
        """Flush staged changes in one round-trip."""
        ...
