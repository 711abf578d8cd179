"""SagaRecoveryWorker — periodic stuck-saga scan."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..instrumentation import SAGA_RECOVERY_SCAN
from ..workers import PollingWorker

if TYPE_CHECKING:
    from ..instrumentation import HookRegistry
    from .coordinator import SagaCoordinator


class SagaRecoveryWorker(PollingWorker):
    """
    Reactive background worker for saga recovery.

    Runs :meth:`SagaCoordinator.recover_stuck` every ``poll_interval``
    seconds, or right away after :meth:`trigger`.
    """

    operation = SAGA_RECOVERY_SCAN

    def __init__(
        self,
        coordinator: SagaCoordinator,
        *,
        hook_registry: HookRegistry | None = None,
    ) -> None:
        options = coordinator.options
        super().__init__(
            poll_interval=options.poll_interval,
            enabled=options.enabled,
            hook_registry=hook_registry,
        )
        self._coordinator = coordinator

    async def _process(self) -> int:
        return await self._coordinator.recover_stuck()
