"""InMemoryOutboxStore — dict-backed fake for unit tests."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

from ...ports.outbox import IOutboxStore, OutboxRecord
from ...primitives.clock import SystemClock
from ...primitives.exceptions import DuplicateRecordError, StoreError
from .staging import ChangeBuffer

if TYPE_CHECKING:
    from datetime import datetime

    from ...ports.unit_of_work import UnitOfWork
    from ...primitives.clock import IClock


class InMemoryOutboxStore(IOutboxStore):
    """In-memory implementation of ``IOutboxStore``.

    Single-process only: :meth:`get_pending` does not claim records, so two
    dispatchers sharing one instance would both see the same batch.
    """

    def __init__(self, clock: IClock | None = None) -> None:
        self._records: dict[str, OutboxRecord] = {}
        self._changes = ChangeBuffer()
        self._clock = clock or SystemClock()

    async def add(self, record: OutboxRecord, uow: UnitOfWork | None = None) -> None:
        if record.id in self._records:
            raise DuplicateRecordError("OutboxRecord", record.id)
        snapshot = copy.copy(record)
        self._changes.stage(
            lambda: self._records.__setitem__(snapshot.id, snapshot),
            uow,
            check=lambda: self._check_absent(snapshot.id),
        )

    async def get_pending(
        self, batch_size: int, max_retries: int | None = None
    ) -> list[OutboxRecord]:
        now = self._clock.now()
        pending = [
            r
            for r in self._records.values()
            if r.is_pending(now)
            and (max_retries is None or r.retry_count < max_retries)
        ]
        # Stable sort keeps insertion order for equal timestamps.
        pending.sort(key=lambda r: r.created_at)
        return [copy.copy(r) for r in pending[:batch_size]]

    async def mark_processed(self, record_id: str) -> None:
        self._require(record_id)
        now = self._clock.now()

        def _apply() -> None:
            self._records[record_id].processed_at = now

        self._changes.stage(_apply)

    async def mark_failed(
        self, record_id: str, error: str, next_retry_at: datetime | None
    ) -> None:
        self._require(record_id)

        def _apply() -> None:
            record = self._records[record_id]
            record.retry_count += 1
            record.last_error = error
            record.next_retry_at = next_retry_at

        self._changes.stage(_apply)

    async def save(self, uow: UnitOfWork | None = None) -> None:
        if uow is None:
            self._changes.flush()

    def _check_absent(self, record_id: str) -> None:
        if record_id in self._records:
            raise DuplicateRecordError("OutboxRecord", record_id)

    def _require(self, record_id: str) -> None:
        if record_id not in self._records:
            raise StoreError(f"OutboxRecord {record_id!r} does not exist")

    # ── Test helpers ─────────────────────────────────────────────

    def get(self, record_id: str) -> OutboxRecord | None:
        record = self._records.get(record_id)
        return copy.copy(record) if record is not None else None

    def all(self) -> list[OutboxRecord]:
        return [copy.copy(r) for r in self._records.values()]

    def dead_lettered(self, max_retries: int) -> list[OutboxRecord]:
        """Records that exhausted their retries (for operators and tests)."""
        return [
            copy.copy(r)
            for r in self._records.values()
            if r.is_dead_lettered(max_retries)
        ]

    def clear(self) -> None:
        self._records.clear()
        self._changes.discard()

    def __len__(self) -> int:
        return len(self._records)
