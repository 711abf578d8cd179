"""InMemoryScheduledMessageStore — dict-backed scheduled message store."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

from ...ports.scheduling import IScheduledMessageStore, ScheduledMessageRecord
from ...primitives.clock import SystemClock
from ...primitives.exceptions import DuplicateRecordError, StoreError
from .staging import ChangeBuffer

if TYPE_CHECKING:
    from datetime import datetime

    from ...ports.unit_of_work import UnitOfWork
    from ...primitives.clock import IClock


class InMemoryScheduledMessageStore(IScheduledMessageStore):
    """In-memory implementation of ``IScheduledMessageStore``."""

    def __init__(self, clock: IClock | None = None) -> None:
        self._records: dict[str, ScheduledMessageRecord] = {}
        self._changes = ChangeBuffer()
        self._clock = clock or SystemClock()

    async def add(
        self, record: ScheduledMessageRecord, uow: UnitOfWork | None = None
    ) -> None:
        self._check_absent(record.id)
        snapshot = copy.copy(record)
        self._changes.stage(
            lambda: self._records.__setitem__(snapshot.id, snapshot),
            uow,
            check=lambda: self._check_absent(snapshot.id),
        )

    async def get_due(
        self, batch_size: int, max_retries: int | None = None
    ) -> list[ScheduledMessageRecord]:
        now = self._clock.now()
        due = [
            r
            for r in self._records.values()
            if r.is_due(now) and (max_retries is None or r.retry_count < max_retries)
        ]
        due.sort(key=lambda r: r.scheduled_at)
        return [copy.copy(r) for r in due[:batch_size]]

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

    async def reschedule(self, record_id: str, next_scheduled_at: datetime) -> None:
        self._require(record_id)
        now = self._clock.now()

        def _apply() -> None:
            record = self._records[record_id]
            record.scheduled_at = next_scheduled_at
            record.processed_at = None
            record.retry_count = 0
            record.last_error = None
            record.next_retry_at = None
            record.last_executed_at = now

        self._changes.stage(_apply)

    async def cancel(self, record_id: str) -> bool:
        record = self._records.get(record_id)
        if record is None or record.is_processed:
            return False
        del self._records[record_id]
        return True

    async def save(self, uow: UnitOfWork | None = None) -> None:
        if uow is None:
            self._changes.flush()

    def _require(self, record_id: str) -> None:
        if record_id not in self._records:
            raise StoreError(f"ScheduledMessageRecord {record_id!r} does not exist")

    def _check_absent(self, record_id: str) -> None:
        if record_id in self._records:
            raise DuplicateRecordError("ScheduledMessageRecord", record_id)

    # ── Test helpers ─────────────────────────────────────────────

    def get(self, record_id: str) -> ScheduledMessageRecord | None:
        record = self._records.get(record_id)
        return copy.copy(record) if record is not None else None

    def all(self) -> list[ScheduledMessageRecord]:
        return [copy.copy(r) for r in self._records.values()]

    def dead_lettered(self, max_retries: int) -> list[ScheduledMessageRecord]:
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
