"""SagaCoordinator — saga lifecycle tracking and stuck-saga detection."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from ..config import SagaOptions
from ..ports.sagas import SAGA_TRANSITIONS, SagaState, SagaStatus
from ..primitives.clock import SystemClock
from ..primitives.exceptions import InvalidSagaTransitionError, SagaNotFoundError
from ..serialization import JsonSerializer

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..ports.sagas import ISagaStore
    from ..ports.serializer import ISerializer
    from ..ports.unit_of_work import UnitOfWork
    from ..primitives.clock import IClock

    RecoveryHandler = Callable[[SagaState], Awaitable[None]]

logger = logging.getLogger("reliable_mediator.sagas")

_UNSET: Any = object()


class SagaCoordinator:
    """
    Tracks saga state through ``Running → Compensating → Completed/Failed``.

    The coordinator records where each saga is. It does not run steps or
    compensations itself; domain code calls :meth:`advance`,
    :meth:`begin_compensation`, :meth:`complete` and :meth:`fail` as it goes.

    :meth:`recover_stuck` finds active sagas that have not moved for
    ``stuck_threshold`` seconds and hands each to ``recovery_handler``, which
    decides whether to resume, compensate or force-fail.
    """

    def __init__(
        self,
        store: ISagaStore,
        serializer: ISerializer | None = None,
        *,
        options: SagaOptions | None = None,
        clock: IClock | None = None,
        recovery_handler: RecoveryHandler | None = None,
    ) -> None:
        self.store = store
        self.serializer = serializer or JsonSerializer()
        self.options = options or SagaOptions()
        self.clock = clock or SystemClock()
        self.recovery_handler = recovery_handler

    # ── Lifecycle ────────────────────────────────────────────────

    async def begin(
        self,
        saga_type: str | type[Any],
        data: Any = None,
        *,
        saga_id: str | None = None,
        uow: UnitOfWork | None = None,
    ) -> SagaState:
        """Start a saga in ``RUNNING`` at step 0."""
        now = self.clock.now()
        state = SagaState(
            saga_type=(
                saga_type
                if isinstance(saga_type, str)
                else self.serializer.type_token(saga_type)
            ),
            data=self._encode(data),
            status=SagaStatus.RUNNING,
            started_at=now,
            last_updated_at=now,
            current_step=0,
        )
        if saga_id is not None:
            state.saga_id = saga_id
        await self.store.add(state, uow=uow)
        await self.store.save(uow=uow)
        logger.info("Saga %s (%s) started", state.saga_id, state.saga_type)
        return state

    async def advance(
        self,
        saga_id: str,
        step: int,
        data: Any = _UNSET,
        *,
        uow: UnitOfWork | None = None,
    ) -> SagaState:
        """Record progress to *step*. The status is left unchanged.

        Valid while ``RUNNING`` (forward steps) or ``COMPENSATING``
        (compensation steps).
        """
        state = await self.get(saga_id)
        if state.is_terminal:
            raise InvalidSagaTransitionError(
                saga_id, state.status.value, state.status.value
            )
        state.current_step = step
        if data is not _UNSET:
            state.data = self._encode(data)
        logger.debug("Saga %s advanced to step %d", saga_id, step)
        return await self._touch(state, uow)

    async def begin_compensation(
        self,
        saga_id: str,
        error: str | None = None,
        *,
        uow: UnitOfWork | None = None,
    ) -> SagaState:
        """Move ``RUNNING → COMPENSATING``, keeping the triggering error."""
        state = await self._transition(saga_id, SagaStatus.COMPENSATING)
        if error is not None:
            state.error_message = error
        logger.warning("Saga %s compensating: %s", saga_id, error)
        return await self._touch(state, uow)

    async def complete(
        self,
        saga_id: str,
        data: Any = _UNSET,
        *,
        uow: UnitOfWork | None = None,
    ) -> SagaState:
        """Finish the saga successfully (terminal)."""
        state = await self._transition(saga_id, SagaStatus.COMPLETED)
        if data is not _UNSET:
            state.data = self._encode(data)
        state.completed_at = self.clock.now()
        logger.info("Saga %s completed", saga_id)
        return await self._touch(state, uow)

    async def fail(
        self,
        saga_id: str,
        error: str,
        *,
        uow: UnitOfWork | None = None,
    ) -> SagaState:
        """Finish the saga as failed (terminal)."""
        state = await self._transition(saga_id, SagaStatus.FAILED)
        state.error_message = error
        state.completed_at = self.clock.now()
        logger.warning("Saga %s failed: %s", saga_id, error)
        return await self._touch(state, uow)

    async def get(self, saga_id: str) -> SagaState:
        """Load a saga.

        Raises:
            SagaNotFoundError: no saga with *saga_id* exists.
        """
        state = await self.store.get(saga_id)
        if state is None:
            raise SagaNotFoundError(saga_id)
        return state

    def read_data(self, state: SagaState, data_type: type[Any]) -> Any:
        """Decode ``state.data`` as *data_type*."""
        return self.serializer.deserialize(
            self.serializer.type_token(data_type), state.data
        )

    # ── Recovery ─────────────────────────────────────────────────

    async def find_stuck(self) -> list[SagaState]:
        """Active sagas idle for longer than ``stuck_threshold``, oldest first."""
        older_than = self.clock.now() - timedelta(seconds=self.options.stuck_threshold)
        return await self.store.get_stuck(older_than, self.options.batch_size)

    async def recover_stuck(self) -> int:
        """Surface stuck sagas to the recovery handler; return how many were found.

        A handler error is logged for that saga and the scan moves on.
        """
        stuck = await self.find_stuck()
        if not stuck:
            return 0

        logger.warning("Found %d stuck sagas", len(stuck))
        for state in stuck:
            if self.recovery_handler is None:
                logger.warning(
                    "Saga %s (%s) stuck in %s at step %d since %s",
                    state.saga_id,
                    state.saga_type,
                    state.status.value,
                    state.current_step,
                    state.last_updated_at.isoformat(),
                )
                continue
            try:
                await self.recovery_handler(state)
            except Exception:
                logger.exception("Recovery handler failed for saga %s", state.saga_id)
        return len(stuck)

    # ── Internals ────────────────────────────────────────────────

    async def _transition(self, saga_id: str, target: SagaStatus) -> SagaState:
        state = await self.get(saga_id)
        if not state.can_transition_to(target):
            allowed = SAGA_TRANSITIONS.get(state.status, frozenset())
            raise InvalidSagaTransitionError(
                saga_id,
                state.status.value,
                target.value,
                allowed=[s.value for s in allowed],
            )
        state.status = target
        return state

    async def _touch(self, state: SagaState, uow: UnitOfWork | None) -> SagaState:
        state.last_updated_at = self.clock.now()
        await self.store.update(state, uow=uow)
        await self.store.save(uow=uow)
        return state

    def _encode(self, data: Any) -> str:
        if data is None:
            return ""
        if isinstance(data, str):
            return data
        return self.serializer.serialize(data)
