"""IScheduledMessageStore — requests deferred to a future delivery time."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from uuid import uuid4

if TYPE_CHECKING:
    from .unit_of_work import UnitOfWork


@dataclass
class ScheduledMessageRecord:
    """A serialized request that re-enters the pipeline at ``scheduled_at``.

    Recurring records carry a ``cron_expression``. After each successful run
    they are rescheduled to the next occurrence instead of being marked
    processed.
    """

    id: str = field(default_factory=lambda: str(uuid4()))
    request_type: str = ""
    content: str = ""
    scheduled_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    processed_at: datetime | None = None
    retry_count: int = 0
    next_retry_at: datetime | None = None
    last_error: str | None = None
    correlation_id: str | None = None
    is_recurring: bool = False
    cron_expression: str | None = None
    last_executed_at: datetime | None = None

    @property
    def is_processed(self) -> bool:
        return self.processed_at is not None

    def is_due(self, now: datetime) -> bool:
        return (
            self.processed_at is None
            and now >= self.scheduled_at
            and (self.next_retry_at is None or self.next_retry_at <= now)
        )

    def is_dead_lettered(self, max_retries: int) -> bool:
        return self.processed_at is None and self.retry_count >= max_retries


@runtime_checkable
class IScheduledMessageStore(Protocol):
    """Port for scheduled message persistence.

    Same claim discipline as the outbox store: replicas racing on
    :meth:`get_due` must not both receive the same record.
    """

    async def add(
        self, record: ScheduledMessageRecord, uow: UnitOfWork | None = None
    ) -> None:
        """Stage a new scheduled record."""
        ...

    async def get_due(
        self, batch_size: int, max_retries: int | None = None
    ) -> list[ScheduledMessageRecord]:
        """Return up to *batch_size* due records ordered by ``scheduled_at``."""
        ...

    async def mark_processed(self, record_id: str) -> None:
        """Stage ``processed_at = now`` for *record_id*."""
        ...

    async def mark_failed(
        self, record_id: str, error: str, next_retry_at: datetime | None
    ) -> None:
        """Stage a failed attempt (increments ``retry_count``)."""
        ...

    async def reschedule(self, record_id: str, next_scheduled_at: datetime) -> None:
        """Stage the next run of a recurring record.

        Moves ``scheduled_at``, resets ``retry_count``, ``last_error`` and
        ``next_retry_at`` and stamps ``last_executed_at = now``.
        """
        ...

    async def cancel(self, record_id: str) -> bool:
        """Remove an unprocessed record. Returns ``False`` if none was found."""
        ...

    async def save(self, uow: UnitOfWork | None = None) -> None:
        """Flush staged changes in one round-trip."""
        ...
