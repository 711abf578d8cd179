"""InboxMiddleware — idempotency gate with response caching."""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from ..config import InboxOptions
from ..pipeline.request import IdempotentRequest
from ..ports.inbox import InboxRecord
from ..ports.middleware import IMiddleware
from ..primitives.clock import SystemClock
from ..primitives.exceptions import DuplicateRecordError, SerializationError
from ..primitives.result import (
    INBOX_DESERIALIZATION_FAILED,
    INBOX_IN_PROGRESS,
    INBOX_MAX_RETRIES_EXCEEDED,
    INBOX_NOT_YET_RETRYABLE,
    RequestResult,
)
from ..serialization import JsonSerializer

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..pipeline.context import RequestContext
    from ..ports.inbox import IInboxStore
    from ..ports.serializer import ISerializer
    from ..primitives.clock import IClock

logger = logging.getLogger("reliable_mediator.inbox")


class InboxMiddleware(IMiddleware):
    """Runs a keyed request at most once to a successful outcome.

    Only :class:`~reliable_mediator.pipeline.request.IdempotentRequest`
    instances with a key (from the context or the request) are tracked.
    For those:

    * first sighting: claim the key, run the handler, record the outcome;
    * already succeeded: return the cached response, handler untouched;
    * failed, retry due and retries left: run the handler again;
    * failed, retries exhausted: ``inbox.max_retries_exceeded``;
    * failed, retry not yet due: ``inbox.not_yet_retryable`` (transient);
    * seen but without any outcome yet: ``inbox.in_progress`` (transient).

    Place it **before** any middleware that opens a transaction: the inbox
    record is written on its own so that handler failures are remembered even
    though the handler's unit of work rolls back.
    """

    def __init__(
        self,
        store: IInboxStore,
        serializer: ISerializer | None = None,
        *,
        options: InboxOptions | None = None,
        clock: IClock | None = None,
    ) -> None:
        self._store = store
        self._serializer = serializer or JsonSerializer()
        self._options = options or InboxOptions()
        self._backoff = self._options.backoff.policy()
        self._clock = clock or SystemClock()

    async def __call__(
        self,
        request: Any,
        context: RequestContext,
        next_handler: Callable[[], Awaitable[RequestResult[Any]]],
    ) -> RequestResult[Any]:
        if not self._options.enabled:
            return await next_handler()

        key = _idempotency_key(request, context)
        if key is None:
            return await next_handler()

        record = await self._store.get(key)
        if record is None:
            return await self._first_attempt(key, request, context, next_handler)

        if record.is_processed:
            logger.info(
                "Inbox hit for %s (correlation_id=%s), returning cached response",
                key,
                context.correlation_id,
            )
            return self._cached_result(record, request.response_type())

        if not record.is_failed:
            logger.warning("Inbox record %s is still in progress", key)
            return _in_progress(key)

        max_retries = self._options.max_retries
        if record.has_exhausted_retries(max_retries):
            logger.warning(
                "Inbox record %s exceeded max retries (%d): %s",
                key,
                max_retries,
                record.error_message,
            )
            return RequestResult.failure(
                INBOX_MAX_RETRIES_EXCEEDED,
                f"Request {key} gave up after {record.retry_count} retries",
                message_id=key,
                retry_count=record.retry_count,
                last_error=record.error_message,
            )

        now = self._clock.now()
        if not record.is_retry_due(now):
            logger.info("Inbox record %s not yet retryable", key)
            return RequestResult.failure(
                INBOX_NOT_YET_RETRYABLE,
                f"Request {key} may be retried after {record.next_retry_at}",
                message_id=key,
                retry_after=record.next_retry_at,
            )

        return await self._retry(record, request, context, next_handler)

    # ── Attempts ─────────────────────────────────────────────────

    async def _first_attempt(
        self,
        key: str,
        request: IdempotentRequest[Any],
        context: RequestContext,
        next_handler: Callable[[], Awaitable[RequestResult[Any]]],
    ) -> RequestResult[Any]:
        now = self._clock.now()
        record = InboxRecord(
            message_id=key,
            request_type=self._serializer.type_token(request),
            received_at=now,
            expires_at=now + timedelta(seconds=self._options.ttl),
            metadata=_metadata(context),
        )
        # The claim (no outcome yet) is what concurrent duplicates observe.
        try:
            await self._store.add(record)
            await self._store.save()
        except DuplicateRecordError:
            logger.warning("Inbox record %s was claimed by a concurrent attempt", key)
            return _in_progress(key)
        return await self._run(record, request, next_handler, first=True)

    async def _retry(
        self,
        record: InboxRecord,
        request: IdempotentRequest[Any],
        context: RequestContext,
        next_handler: Callable[[], Awaitable[RequestResult[Any]]],
    ) -> RequestResult[Any]:
        logger.info(
            "Retrying inbox record %s (attempt %d, correlation_id=%s): %s",
            record.message_id,
            record.retry_count + 2,
            context.correlation_id,
            record.error_message,
        )
        record.error_message = None
        record.next_retry_at = None
        await self._store.update(record)
        await self._store.save()
        return await self._run(record, request, next_handler, first=False)

    async def _run(
        self,
        record: InboxRecord,
        request: IdempotentRequest[Any],
        next_handler: Callable[[], Awaitable[RequestResult[Any]]],
        *,
        first: bool,
    ) -> RequestResult[Any]:
        try:
            result = await next_handler()
        except Exception as exc:
            self._record_failure(record, _describe(exc), first=first)
            await self._store.update(record)
            await self._store.save()
            raise

        if result.is_success:
            self._record_success(record, result.value, request.response_type())
        else:
            self._record_failure(record, _describe_result(result), first=first)
        await self._store.update(record)
        await self._store.save()
        return result

    # ── Record transitions ───────────────────────────────────────

    def _record_success(
        self, record: InboxRecord, value: Any, response_type: Any
    ) -> None:
        record.processed_at = self._clock.now()
        record.error_message = None
        record.next_retry_at = None
        try:
            record.cached_response = self._encode(value, response_type)
        except SerializationError:
            logger.exception(
                "Could not cache response for inbox record %s", record.message_id
            )
            record.cached_response = None

    def _record_failure(self, record: InboxRecord, error: str, *, first: bool) -> None:
        now = self._clock.now()
        if not first:
            record.retry_count += 1
        record.error_message = error
        record.processed_at = None
        if record.retry_count >= self._options.max_retries:
            record.next_retry_at = None
            logger.warning(
                "Inbox record %s failed for the last time: %s",
                record.message_id,
                error,
            )
        else:
            record.next_retry_at = self._backoff.next_retry_at(
                now, record.retry_count + 1
            )
            logger.info(
                "Inbox record %s failed (retry_count=%d, next_retry_at=%s): %s",
                record.message_id,
                record.retry_count,
                record.next_retry_at.isoformat(),
                error,
            )

    # ── Response cache ───────────────────────────────────────────

    def _encode(self, value: Any, response_type: Any) -> str:
        if value is None:
            return json.dumps({"type": None, "value": None})
        return json.dumps(
            {
                "type": self._serializer.type_token(value),
                "value": json.loads(
                    self._serializer.serialize(value, type_hint=response_type)
                ),
            }
        )

    def _cached_result(
        self, record: InboxRecord, response_type: Any
    ) -> RequestResult[Any]:
        if record.cached_response is None:
            return RequestResult.failure(
                INBOX_DESERIALIZATION_FAILED,
                f"No cached response stored for {record.message_id}",
                message_id=record.message_id,
            )
        try:
            envelope = json.loads(record.cached_response)
            token = envelope["type"]
            content = json.dumps(envelope["value"])
            if token is None:
                value = None
            elif response_type is not None:
                value = self._serializer.deserialize_as(response_type, content)
            else:
                value = self._serializer.deserialize(token, content)
        except (SerializationError, ValueError, KeyError, TypeError) as exc:
            logger.error(
                "Cached response of inbox record %s is unreadable: %s",
                record.message_id,
                exc,
            )
            return RequestResult.failure(
                INBOX_DESERIALIZATION_FAILED,
                f"Cached response for {record.message_id} could not be read: {exc}",
                message_id=record.message_id,
            )
        return RequestResult.success(value)


def _in_progress(key: str) -> RequestResult[Any]:
    return RequestResult.failure(
        INBOX_IN_PROGRESS,
        f"Request {key} is already being processed",
        message_id=key,
    )


def _idempotency_key(request: Any, context: RequestContext) -> str | None:
    if not isinstance(request, IdempotentRequest):
        return None
    return context.idempotency_key or request.idempotency_key()


def _metadata(context: RequestContext) -> str:
    return json.dumps(
        {
            "correlation_id": context.correlation_id,
            "user_id": context.user_id,
            "tenant_id": context.tenant_id,
            "timestamp": context.timestamp.isoformat(),
        }
    )


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


def _describe_result(result: RequestResult[Any]) -> str:
    if result.error is None:
        return "unknown error"
    return f"[{result.error.code}] {result.error.message}"
