"""InboxPurgeService — removes inbox records past their retention window."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..config import InboxOptions

if TYPE_CHECKING:
    from ..ports.inbox import IInboxStore

logger = logging.getLogger("reliable_mediator.inbox")


class InboxPurgeService:
    """Deletes expired records whatever their status.

    Once a record is gone its key is forgotten, so a later duplicate is
    handled as a first sighting.
    """

    def __init__(self, store: IInboxStore, options: InboxOptions | None = None) -> None:
        self._store = store
        self._options = options or InboxOptions()

    async def purge_expired(self) -> int:
        """Remove up to ``purge_batch_size`` expired records; return the count."""
        expired = await self._store.get_expired(self._options.purge_batch_size)
        if not expired:
            return 0
        removed = await self._store.remove_expired([r.message_id for r in expired])
        logger.info("Purged %d expired inbox records", removed)
        return removed
