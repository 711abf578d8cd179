"""OutboxWorker — background loop around :class:`OutboxDispatcher`."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..instrumentation import OUTBOX_DISPATCH_BATCH
from ..workers import PollingWorker

if TYPE_CHECKING:
    from ..instrumentation import HookRegistry
    from .dispatcher import OutboxDispatcher


class OutboxWorker(PollingWorker):
    """Polls the outbox every ``poll_interval`` seconds.

    Call :meth:`trigger` after a commit that wrote outbox records to publish
    them without waiting for the next poll.
    """

    operation = OUTBOX_DISPATCH_BATCH

    def __init__(
        self,
        dispatcher: OutboxDispatcher,
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
