"""IInboxStore — idempotency records for exactly-once-effective handling."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .unit_of_work import UnitOfWork


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class InboxRecord:
    """One observed idempotency key and the outcome of handling it."""

    message_id: str
    request_type: str = ""
    received_at: datetime = field(default_factory=_utcnow)
    expires_at: datetime = field(default_factory=_utcnow)
    processed_at: datetime | None = None
    cached_response: str | None = None
    error_message: str | None = None
    retry_count: int = 0
    next_retry_at: datetime | None = None
    metadata: str | None = field(
        default=None, metadata={"description": "JSON: correlation, user, tenant"}
    )

    @property
    def is_processed(self) -> bool:
        return self.processed_at is not None and self.error_message is None

    @property
    def is_failed(self) -> bool:
        return self.error_message is not None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_retry_due(self, now: datetime) -> bool:
        return self.next_retry_at is None or self.next_retry_at <= now

    def has_exhausted_retries(self, max_retries: int) -> bool:
        return self.is_failed and self.retry_count >= max_retries


@runtime_checkable
class IInboxStore(Protocol):
    """Persistence port for :class:`InboxRecord`.

    ``message_id`` is unique. Mutations are staged until :meth:`save`, or
    join *uow* when one is passed.
    """

    async def get(self, message_id: str) -> InboxRecord | None:
        """Return the record for *message_id*, if any."""
        ...

    async def add(self, record: InboxRecord, uow: UnitOfWork | None = None) -> None:
        """Stage a new record."""
        ...

    async def update(
        self, record: InboxRecord, uow: UnitOfWork | None = None
    ) -> None:
        """Stage the new state of an existing record."""
        ...

    async def save(self, uow: UnitOfWork | None = None) -> None:
        """Flush staged changes in one round-trip."""
        ...

    async def get_expired(self, batch_size: int) -> list[InboxRecord]:
        """Return up to *batch_size* records past ``expires_at``, oldest first."""
        ...

    async def remove_expired(self, message_ids: list[str]) -> int:
        """Delete the given records. Returns how many were removed."""
        ...
