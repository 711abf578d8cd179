"""ScheduledMessageWorker — reactive background worker for due scheduled requests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..instrumentation import SCHEDULER_DISPATCH_BATCH
from ..workers import PollingWorker

if TYPE_CHECKING:
    from ..instrumentation import HookRegistry
    from .dispatcher import ScheduledMessageDispatcher


class ScheduledMessageWorker(PollingWorker):
    """Reactive worker that executes due scheduled requests.

    Uses trigger + polling fallback. Call :meth:`trigger` to wake immediately
    (e.g. after scheduling something due now); otherwise runs every
    ``poll_interval`` seconds.
    """

    operation = SCHEDULER_DISPATCH_BATCH

    def __init__(
        self,
        dispatcher: ScheduledMessageDispatcher,
        *,
        hook_registry: HookRegistry | None = None,
    ) -> None:
        options = dispatcher.options
        super().__init__(
            poll_interval=options.poll_interval,
            enabled=options.enabled,
            hook_registry=hook_registry,
        )
        self._dispatcher = dispatcher

    async def _process(self) -> int:
        summary = await self._dispatcher.process_batch()
        return summary.attempted
