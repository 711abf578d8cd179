"""InboxPurgeWorker — periodic expiry sweep."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..config import InboxOptions
from ..instrumentation import INBOX_PURGE_BATCH
from ..workers import PollingWorker

if TYPE_CHECKING:
    from ..instrumentation import HookRegistry
    from .purge import InboxPurgeService


class InboxPurgeWorker(PollingWorker):
    """Runs :meth:`InboxPurgeService.purge_expired` every ``purge_interval``."""

    operation = INBOX_PURGE_BATCH

    def __init__(
        self,
        service: InboxPurgeService,
        options: InboxOptions | None = None,
        *,
        hook_registry: HookRegistry | None = None,
    ) -> None:
        options = options or InboxOptions()
        super().__init__(
            poll_interval=options.purge_interval,
            enabled=options.enabled,
            hook_registry=hook_registry,
        )
        self._service = service

    async def _process(self) -> int:
        return await self._service.purge_expired()
