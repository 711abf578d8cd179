"""IOutboxStore — transactional outbox protocol."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from uuid import uuid4

if TYPE_CHECKING:
    from .unit_of_work import UnitOfWork


@dataclass
class OutboxRecord:
    """A notification waiting in the transactional outbox."""

    id: str = field(default_factory=lambda: str(uuid4()))
    notification_type: str = ""
    content: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    processed_at: datetime | None = None
    retry_count: int = 0
    next_retry_at: datetime | None = None
    last_error: str | None = None
    correlation_id: str | None = field(
        default=None, metadata={"description": "Traces the originating request"}
    )

    @property
    def is_processed(self) -> bool:
        return self.processed_at is not None

    def is_pending(self, now: datetime) -> bool:
        """Unprocessed and either never failed or past its retry time."""
        return self.processed_at is None and (
            self.next_retry_at is None or self.next_retry_at <= now
        )

    def is_dead_lettered(self, max_retries: int) -> bool:
        """Retries exhausted without a successful publish."""
        return self.processed_at is None and self.retry_count >= max_retries


@runtime_checkable
class IOutboxStore(Protocol):
    """Protocol for the transactional outbox pattern.

    Implementations serving several dispatcher replicas must claim rows
    atomically in :meth:`get_pending` (``SELECT … FOR UPDATE SKIP LOCKED`` or
    a conditional update) so one record is not handed to two replicas.
    """

    async def add(self, record: OutboxRecord, uow: UnitOfWork | None = None) -> None:
        """
        Stage a record.

        Args:
            record: The record to persist.
            uow: The handler's unit of work; when given, the record commits
                 or rolls back with the handler's own writes.
        """
        ...

    async def get_pending(
        self, batch_size: int, max_retries: int | None = None
    ) -> list[OutboxRecord]:
        """Return up to *batch_size* pending records, oldest first.

        Records with ``retry_count >= max_retries`` are excluded when
        *max_retries* is given.
        """
        ...

    async def mark_processed(self, record_id: str) -> None:
        """Stage ``processed_at = now`` for *record_id*."""
        ...

    async def mark_failed(
        self, record_id: str, error: str, next_retry_at: datetime | None
    ) -> None:
        """Stage a failed attempt.

        Increments ``retry_count``, stores ``last_error`` and the next retry
        time. ``None`` means no further attempt.
        """
        ...

    async def save(self, uow: UnitOfWork | None = None) -> None:
        """Flush staged changes in one round-trip."""
        ...
