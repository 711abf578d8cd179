"""ScheduledMessageDispatcher — re-enters due requests into the pipeline."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..config import SchedulingOptions
from ..correlation import correlation_scope
from ..pipeline.context import RequestContext
from ..primitives.clock import SystemClock
from ..serialization import JsonSerializer
from ..workers import BatchSummary
from .cron import next_occurrence

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from ..ports.scheduling import IScheduledMessageStore, ScheduledMessageRecord
    from ..ports.serializer import ISerializer
    from ..primitives.clock import IClock
    from ..primitives.result import RequestResult

    DispatchFn = Callable[[Any, RequestContext], Awaitable[RequestResult[Any]]]

logger = logging.getLogger("reliable_mediator.scheduling")


class ScheduledMessageDispatcher:
    """Sends due scheduled requests through *dispatch_fn* (``Mediator.send``).

    Same retry discipline as the outbox dispatcher: a raised exception or a
    failed :class:`RequestResult` counts as a failed attempt and is retried
    with backoff until ``max_retries`` is reached, after which the record
    stays in the store as a dead letter.

    Recurring records are rescheduled to their next cron occurrence after a
    successful run. A failing run is retried like any other record.

    The handler sees ``context.metadata["scheduled_message_id"]`` and runs
    with the record id as causation id.
    """

    def __init__(
        self,
        store: IScheduledMessageStore,
        dispatch_fn: DispatchFn,
        serializer: ISerializer | None = None,
        *,
        options: SchedulingOptions | None = None,
        clock: IClock | None = None,
    ) -> None:
        self.store = store
        self.dispatch_fn = dispatch_fn
        self.serializer = serializer or JsonSerializer()
        self.options = options or SchedulingOptions()
        self.clock = clock or SystemClock()
        self._backoff = self.options.backoff.policy()

    async def process_batch(self) -> BatchSummary:
        records = await self.store.get_due(
            self.options.batch_size, max_retries=self.options.max_retries
        )
        if not records:
            return BatchSummary()

        succeeded = failed = dead = 0
        for record in records:
            error = await self._dispatch(record)
            if error is None:
                await self._record_success(record)
                succeeded += 1
                continue
            failed += 1
            if await self._record_failure(record, error, self.clock.now()):
                dead += 1

        await self.store.save()

        logger.info(
            "Scheduler batch: %d processed, %d succeeded, %d failed (%d dead-lettered)",
            len(records),
            succeeded,
            failed,
            dead,
        )
        return BatchSummary(
            attempted=len(records),
            succeeded=succeeded,
            failed=failed,
            dead_lettered=dead,
        )

    async def _dispatch(self, record: ScheduledMessageRecord) -> str | None:
        """Run one record. Returns an error description, or ``None`` on success."""
        context = RequestContext(
            correlation_id=record.correlation_id,
            metadata={"scheduled_message_id": record.id},
        )
        try:
            request = self.serializer.deserialize(record.request_type, record.content)
            with correlation_scope(record.correlation_id, causation_id=record.id):
                result = await self.dispatch_fn(request, context)
        except Exception as exc:  # noqa: BLE001
            return f"{type(exc).__name__}: {exc}"
        if result.is_failure and result.error is not None:
            return f"[{result.error.code}] {result.error.message}"
        logger.debug("Executed scheduled message %s", record.id)
        return None

    async def _record_success(self, record: ScheduledMessageRecord) -> None:
        if not record.is_recurring or record.cron_expression is None:
            await self.store.mark_processed(record.id)
            return
        next_run = next_occurrence(record.cron_expression, self.clock.now())
        logger.debug(
            "Recurring message %s rescheduled for %s", record.id, next_run.isoformat()
        )
        await self.store.reschedule(record.id, next_run)

    async def _record_failure(
        self, record: ScheduledMessageRecord, error: str, now: datetime
    ) -> bool:
        attempt = record.retry_count + 1
        if attempt >= self.options.max_retries:
            logger.warning(
                "Scheduled message %s (%s) failed %d times, giving up: %s",
                record.id,
                record.request_type,
                attempt,
                error,
            )
            await self.store.mark_failed(record.id, error, None)
            return True

        next_retry_at = self._backoff.next_retry_at(now, attempt)
        logger.error(
            "Scheduled message %s failed (attempt %d, retry at %s): %s",
            record.id,
            attempt,
            next_retry_at.isoformat(),
            error,
        )
        await self.store.mark_failed(record.id, error, next_retry_at)
        return False
