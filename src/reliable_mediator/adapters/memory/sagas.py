"""InMemorySagaStore — dict-backed saga persistence for testing."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

from ...ports.sagas import ISagaStore, SagaState
from ...primitives.exceptions import DuplicateRecordError, StoreError
from .staging import ChangeBuffer

if TYPE_CHECKING:
    from datetime import datetime

    from ...ports.unit_of_work import UnitOfWork


class InMemorySagaStore(ISagaStore):
    """In-memory implementation of ``ISagaStore``."""

    def __init__(self) -> None:
        self._sagas: dict[str, SagaState] = {}
        self._changes = ChangeBuffer()

    async def get(self, saga_id: str) -> SagaState | None:
        state = self._sagas.get(saga_id)
        return copy.copy(state) if state is not None else None

    async def add(self, state: SagaState, uow: UnitOfWork | None = None) -> None:
        self._check_absent(state.saga_id)
        snapshot = copy.copy(state)
        self._changes.stage(
            lambda: self._sagas.__setitem__(snapshot.saga_id, snapshot),
            uow,
            check=lambda: self._check_absent(snapshot.saga_id),
        )

    async def update(self, state: SagaState, uow: UnitOfWork | None = None) -> None:
        if state.saga_id not in self._sagas:
            raise StoreError(f"SagaState {state.saga_id!r} does not exist")
        snapshot = copy.copy(state)
        self._changes.stage(
            lambda: self._sagas.__setitem__(snapshot.saga_id, snapshot), uow
        )

    async def get_stuck(self, older_than: datetime, batch_size: int) -> list[SagaState]:
        stuck = [s for s in self._sagas.values() if s.is_stuck(older_than)]
        stuck.sort(key=lambda s: s.last_updated_at)
        return [copy.copy(s) for s in stuck[:batch_size]]

    async def save(self, uow: UnitOfWork | None = None) -> None:
        if uow is None:
            self._changes.flush()

    def _check_absent(self, saga_id: str) -> None:
        if saga_id in self._sagas:
            raise DuplicateRecordError("SagaState", saga_id)

    # ── Test helpers ─────────────────────────────────────────────

    def all(self) -> list[SagaState]:
        return [copy.copy(s) for s in self._sagas.values()]

    def clear(self) -> None:
        self._sagas.clear()
        self._changes.discard()

    def __len__(self) -> int:
        return len(self._sagas)
