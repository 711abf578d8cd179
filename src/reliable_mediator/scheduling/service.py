"""ScheduledMessageService — defers a request to a later delivery time."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from ..correlation import get_correlation_id
from ..ports.scheduling import ScheduledMessageRecord
from ..primitives.clock import SystemClock
from ..serialization import JsonSerializer
from ..utils import ensure_utc
from .cron import next_occurrence, validate_cron

if TYPE_CHECKING:
    from datetime import datetime

    from ..ports.scheduling import IScheduledMessageStore
    from ..ports.serializer import ISerializer
    from ..ports.unit_of_work import UnitOfWork
    from ..primitives.clock import IClock

logger = logging.getLogger("reliable_mediator.scheduling")


class ScheduledMessageService:
    """Stores requests for later re-entry into the pipeline.

    Scheduling from inside a handler with ``uow=context.unit_of_work`` makes
    the schedule part of the handler's transaction, like outbox capture.
    """

    def __init__(
        self,
        store: IScheduledMessageStore,
        serializer: ISerializer | None = None,
        *,
        clock: IClock | None = None,
    ) -> None:
        self._store = store
        self._serializer = serializer or JsonSerializer()
        self._clock = clock or SystemClock()

    async def schedule(
        self,
        request: Any,
        *,
        at: datetime | None = None,
        delay: timedelta | float | None = None,
        uow: UnitOfWork | None = None,
    ) -> str:
        """Schedule *request* for *at* or after *delay*; return the record id.

        With neither, the request is due immediately.

        Raises:
            ValueError: both *at* and *delay* were given.
        """
        if at is not None and delay is not None:
            raise ValueError("Pass either 'at' or 'delay', not both")

        now = self._clock.now()
        if at is not None:
            scheduled_at = ensure_utc(at)
        elif delay is not None:
            if not isinstance(delay, timedelta):
                delay = timedelta(seconds=delay)
            scheduled_at = now + delay
        else:
            scheduled_at = now

        return await self._store_record(request, scheduled_at, now, uow=uow)

    async def schedule_recurring(
        self,
        request: Any,
        cron: str,
        *,
        uow: UnitOfWork | None = None,
    ) -> str:
        """Run *request* at every occurrence of the *cron* expression.

        The first run is the next occurrence after now. Cancel the returned
        id to stop the series.

        Raises:
            ValueError: *cron* is not a valid cron expression.
        """
        validate_cron(cron)
        now = self._clock.now()
        return await self._store_record(
            request, next_occurrence(cron, now), now, uow=uow, cron=cron
        )

    async def _store_record(
        self,
        request: Any,
        scheduled_at: datetime,
        now: datetime,
        *,
        uow: UnitOfWork | None,
        cron: str | None = None,
    ) -> str:
        record = ScheduledMessageRecord(
            request_type=self._serializer.type_token(request),
            content=self._serializer.serialize(request),
            scheduled_at=scheduled_at,
            created_at=now,
            correlation_id=getattr(request, "correlation_id", None)
            or get_correlation_id(),
            is_recurring=cron is not None,
            cron_expression=cron,
        )
        await self._store.add(record, uow=uow)
        await self._store.save(uow=uow)
        logger.info(
            "Scheduled %s as %s for %s%s",
            record.request_type,
            record.id,
            scheduled_at.isoformat(),
            f" (recurring: {cron})" if cron else "",
        )
        return record.id

    async def cancel(self, record_id: str) -> bool:
        """Remove a pending scheduled record. Returns ``False`` if none existed."""
        cancelled = await self._store.cancel(record_id)
        if cancelled:
            logger.info("Cancelled scheduled message %s", record_id)
        else:
            logger.debug("No pending scheduled message %s to cancel", record_id)
        return cancelled
