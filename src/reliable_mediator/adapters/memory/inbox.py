"""InMemoryInboxStore — dict-backed inbox for tests and single-process use."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

from ...ports.inbox import IInboxStore, InboxRecord
from ...primitives.clock import SystemClock
from ...primitives.exceptions import DuplicateRecordError, StoreError
from .staging import ChangeBuffer

if TYPE_CHECKING:
    from ...ports.unit_of_work import UnitOfWork
    from ...primitives.clock import IClock


class InMemoryInboxStore(IInboxStore):
    """In-memory implementation of ``IInboxStore`` keyed by ``message_id``."""

    def __init__(self, clock: IClock | None = None) -> None:
        self._records: dict[str, InboxRecord] = {}
        self._changes = ChangeBuffer()
        self._clock = clock or SystemClock()

    async def get(self, message_id: str) -> InboxRecord | None:
        record = self._records.get(message_id)
        return copy.copy(record) if record is not None else None

    async def add(self, record: InboxRecord, uow: UnitOfWork | None = None) -> None:
        if record.message_id in self._records:
            raise DuplicateRecordError("InboxRecord", record.message_id)
        snapshot = copy.copy(record)

        def _check() -> None:
            if snapshot.message_id in self._records:
                raise DuplicateRecordError("InboxRecord", snapshot.message_id)

        self._changes.stage(
            lambda: self._records.__setitem__(snapshot.message_id, snapshot),
            uow,
            check=_check,
        )

    async def update(
        self, record: InboxRecord, uow: UnitOfWork | None = None
    ) -> None:
        if record.message_id not in self._records:
            raise StoreError(f"InboxRecord {record.message_id!r} does not exist")
        snapshot = copy.copy(record)
        self._changes.stage(
            lambda: self._records.__setitem__(snapshot.message_id, snapshot), uow
        )

    async def save(self, uow: UnitOfWork | None = None) -> None:
        # Changes staged with a unit of work are applied by its commit.
        if uow is None:
            self._changes.flush()

    async def get_expired(self, batch_size: int) -> list[InboxRecord]:
        now = self._clock.now()
        expired = [r for r in self._records.values() if r.is_expired(now)]
        expired.sort(key=lambda r: r.expires_at)
        return [copy.copy(r) for r in expired[:batch_size]]

    async def remove_expired(self, message_ids: list[str]) -> int:
        removed = 0
        for message_id in message_ids:
            if self._records.pop(message_id, None) is not None:
                removed += 1
        return removed

    # ── Test helpers ─────────────────────────────────────────────

    def all(self) -> list[InboxRecord]:
        return [copy.copy(r) for r in self._records.values()]

    def clear(self) -> None:
        self._records.clear()
        self._changes.discard()

    def __len__(self) -> int:
        return len(self._records)
