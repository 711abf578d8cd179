"""OutboxDispatcher — turns pending outbox records into publish attempts."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..config import OutboxOptions
from ..primitives.clock import SystemClock
from ..serialization import JsonSerializer
from ..workers import BatchSummary

if TYPE_CHECKING:
    from datetime import datetime

    from ..ports.messaging import IMessagePublisher
    from ..ports.outbox import IOutboxStore, OutboxRecord
    from ..ports.serializer import ISerializer
    from ..primitives.clock import IClock

logger = logging.getLogger("reliable_mediator.outbox")


class OutboxDispatcher:
    """
    Publishes pending outbox records in batches.

    Lifecycle per batch:
    1. Fetch up to ``batch_size`` pending records, oldest first.
    2. Deserialize each by its type token and hand it to the publisher.
    3. Mark published records processed; record failures with backoff.
    4. Flush all outcomes with a single ``save()``.

    A failure that exhausts ``max_retries`` leaves the record in the store
    with its last error and no next retry time. It is never picked up again
    and never deleted.

    Store errors are not caught here; the worker loop logs them and the next
    poll tries again.
    """

    def __init__(
        self,
        store: IOutboxStore,
        publisher: IMessagePublisher,
        serializer: ISerializer | None = None,
        *,
        options: OutboxOptions | None = None,
        clock: IClock | None = None,
    ) -> None:
        self.store = store
        self.publisher = publisher
        self.serializer = serializer or JsonSerializer()
        self.options = options or OutboxOptions()
        self.clock = clock or SystemClock()
        self._backoff = self.options.backoff.policy()

    async def process_batch(self) -> BatchSummary:
        records = await self.store.get_pending(
            self.options.batch_size, max_retries=self.options.max_retries
        )
        if not records:
            return BatchSummary()

        succeeded = failed = dead = 0
        for record in records:
            try:
                notification = self.serializer.deserialize(
                    record.notification_type, record.content
                )
                await self.publisher.publish(
                    record.notification_type,
                    notification,
                    message_id=record.id,
                    correlation_id=record.correlation_id,
                )
            except Exception as exc:  # noqa: BLE001
                failed += 1
                if await self._record_failure(record, exc, self.clock.now()):
                    dead += 1
            else:
                await self.store.mark_processed(record.id)
                succeeded += 1
                logger.debug("Published outbox record %s", record.id)

        await self.store.save()

        summary = BatchSummary(
            attempted=len(records),
            succeeded=succeeded,
            failed=failed,
            dead_lettered=dead,
        )
        logger.info(
            "Outbox batch: %d processed, %d succeeded, %d failed (%d dead-lettered)",
            summary.attempted,
            summary.succeeded,
            summary.failed,
            summary.dead_lettered,
        )
        return summary

    async def _record_failure(
        self, record: OutboxRecord, exc: Exception, now: datetime
    ) -> bool:
        """Stage the failed attempt. Returns ``True`` when it was the last one."""
        attempt = record.retry_count + 1
        error = f"{type(exc).__name__}: {exc}"
        if attempt >= self.options.max_retries:
            logger.warning(
                "Outbox record %s (%s) failed %d times, giving up: %s",
                record.id,
                record.notification_type,
                attempt,
                error,
            )
            await self.store.mark_failed(record.id, error, None)
            return True

        next_retry_at = self._backoff.next_retry_at(now, attempt)
        logger.error(
            "Failed to publish outbox record %s (attempt %d, retry at %s): %s",
            record.id,
            attempt,
            next_retry_at.isoformat(),
            error,
        )
        await self.store.mark_failed(record.id, error, next_retry_at)
        return False
