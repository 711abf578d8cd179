from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from typing import Any

import pytest
from pydantic import BaseModel

from reliable_mediator.adapters.memory import (
    InMemoryInboxStore,
    InMemoryUnitOfWork,
    ManualClock,
)
from reliable_mediator.config import BackoffOptions, InboxOptions
from reliable_mediator.inbox import InboxMiddleware, InboxPurgeService
from reliable_mediator.pipeline import (
    HandlerRegistry,
    IdempotentRequest,
    Mediator,
    Request,
    RequestContext,
    RequestHandler,
)
from reliable_mediator.ports.inbox import InboxRecord
from reliable_mediator.primitives.result import (
    INBOX_DESERIALIZATION_FAILED,
    INBOX_IN_PROGRESS,
    INBOX_MAX_RETRIES_EXCEEDED,
    INBOX_NOT_YET_RETRYABLE,
    RequestResult,
)

# ═══════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════


class Payment(BaseModel):
    payment_id: str
    amount: int


class ChargeCard(IdempotentRequest[Payment]):
    amount: int


class ChargeWithReference(IdempotentRequest[Payment]):
    reference: str
    amount: int

    def idempotency_key(self) -> str | None:
        return f"charge:{self.reference}"


class PlainRequest(Request[int]):
    pass


class ChargeHandler(RequestHandler[Payment]):
    def __init__(self) -> None:
        self.calls = 0
        self.outcomes: list[str] = []

    async def handle(self, request: Any, context: RequestContext) -> Any:
        self.calls += 1
        outcome = self.outcomes.pop(0) if self.outcomes else "ok"
        if outcome == "fail":
            return RequestResult.failure("payments.declined", "Card declined")
        if outcome == "raise":
            raise ConnectionError("gateway timeout")
        if outcome == "none":
            return None
        if outcome == "slow":
            await asyncio.sleep(0.01)
        return RequestResult.success(
            Payment(payment_id=f"pay-{self.calls}", amount=request.amount)
        )


class ListPayments(IdempotentRequest[list[Payment]]):
    customer: str


class ListPaymentsHandler(RequestHandler[list[Payment]]):
    def __init__(self) -> None:
        self.calls = 0

    async def handle(self, request: Any, context: RequestContext) -> Any:
        self.calls += 1
        return [
            Payment(payment_id=f"{request.customer}-1", amount=5),
            Payment(payment_id=f"{request.customer}-2", amount=7),
        ]


class StaleReadInboxStore(InMemoryInboxStore):
    """Misses records on read, as a lagging replica would."""

    async def get(self, message_id: str) -> InboxRecord | None:
        return None


OPTIONS = InboxOptions(max_retries=3, backoff=BackoffOptions(base=10.0, cap=600.0))


def build(
    store: InMemoryInboxStore,
    clock: ManualClock,
    options: InboxOptions = OPTIONS,
) -> tuple[Mediator, ChargeHandler]:
    registry = HandlerRegistry()
    handler = ChargeHandler()
    registry.register(ChargeCard, handler)
    registry.register(ChargeWithReference, handler)
    registry.register(PlainRequest, handler)
    inbox = InboxMiddleware(store, options=options, clock=clock)
    return Mediator(registry, InMemoryUnitOfWork, middlewares=[inbox]), handler


def keyed(key: str = "msg-1", **kwargs: Any) -> RequestContext:
    return RequestContext(idempotency_key=key, **kwargs)


# ═══════════════════════════════════════════════════════════════════════
# Pass-through
# ═══════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio()
async def test_request_without_key_passes_through(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)

    await mediator.send(ChargeCard(amount=5))
    await mediator.send(ChargeCard(amount=5))

    assert handler.calls == 2
    assert len(inbox_store) == 0


@pytest.mark.asyncio()
async def test_non_idempotent_request_ignores_context_key(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)

    await mediator.send(PlainRequest(), keyed())
    await mediator.send(PlainRequest(), keyed())

    assert handler.calls == 2
    assert len(inbox_store) == 0


@pytest.mark.asyncio()
async def test_disabled_inbox_passes_through(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock, InboxOptions(enabled=False))

    await mediator.send(ChargeCard(amount=5), keyed())
    await mediator.send(ChargeCard(amount=5), keyed())

    assert handler.calls == 2
    assert len(inbox_store) == 0


# ═══════════════════════════════════════════════════════════════════════
# Exactly-once-effective handling
# ═══════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio()
async def test_duplicate_returns_cached_response(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)

    first = await mediator.send(ChargeCard(amount=5), keyed())
    second = await mediator.send(ChargeCard(amount=999), keyed())

    assert handler.calls == 1
    assert second.is_success
    assert second.value == first.value
    assert isinstance(second.value, Payment)


@pytest.mark.asyncio()
async def test_collection_response_is_restored_as_declared(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    registry = HandlerRegistry()
    handler = ListPaymentsHandler()
    registry.register(ListPayments, handler)
    inbox = InboxMiddleware(inbox_store, options=OPTIONS, clock=clock)
    mediator = Mediator(registry, InMemoryUnitOfWork, middlewares=[inbox])

    first = await mediator.send(ListPayments(customer="c-1"), keyed())
    second = await mediator.send(ListPayments(customer="c-1"), keyed())

    assert handler.calls == 1
    assert second.is_success
    assert second.value == first.value
    assert all(isinstance(p, Payment) for p in second.value)


def test_response_type_follows_the_declared_result() -> None:
    assert ChargeCard.response_type() is Payment
    assert ListPayments.response_type() == list[Payment]
    assert PlainRequest.response_type() is int
    assert IdempotentRequest.response_type() is None


@pytest.mark.asyncio()
async def test_cached_response_is_byte_stable(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, _ = build(inbox_store, clock)

    await mediator.send(ChargeCard(amount=5), keyed())
    stored = (await inbox_store.get("msg-1")).cached_response  # type: ignore[union-attr]
    await mediator.send(ChargeCard(amount=5), keyed())
    await mediator.send(ChargeCard(amount=5), keyed())

    assert (await inbox_store.get("msg-1")).cached_response == stored  # type: ignore[union-attr]


@pytest.mark.asyncio()
async def test_key_from_request(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)

    await mediator.send(ChargeWithReference(reference="R1", amount=1))
    await mediator.send(ChargeWithReference(reference="R1", amount=1))

    assert handler.calls == 1
    assert await inbox_store.get("charge:R1") is not None


@pytest.mark.asyncio()
async def test_none_response_is_cached(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)
    handler.outcomes = ["none"]

    first = await mediator.send(ChargeCard(amount=1), keyed())
    second = await mediator.send(ChargeCard(amount=1), keyed())

    assert first.is_success
    assert second.is_success
    assert second.value is None
    assert handler.calls == 1


@pytest.mark.asyncio()
async def test_success_record_fields(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, _ = build(inbox_store, clock)

    await mediator.send(
        ChargeCard(amount=5),
        keyed(correlation_id="corr-1", user_id="u-1", tenant_id="t-1"),
    )

    record = await inbox_store.get("msg-1")
    assert record is not None
    assert record.is_processed
    assert record.processed_at == clock.now()
    assert record.received_at == clock.now()
    assert record.expires_at == clock.now() + timedelta(seconds=OPTIONS.ttl)
    assert record.request_type.endswith(":ChargeCard")
    assert record.retry_count == 0
    metadata = json.loads(record.metadata or "{}")
    assert metadata["correlation_id"] == "corr-1"
    assert metadata["user_id"] == "u-1"
    assert metadata["tenant_id"] == "t-1"
    assert "timestamp" in metadata


# ═══════════════════════════════════════════════════════════════════════
# Concurrent duplicates
# ═══════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio()
async def test_concurrent_duplicates_run_the_handler_once(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)
    handler.outcomes = ["slow", "slow"]

    results = await asyncio.gather(
        mediator.send(ChargeCard(amount=5), keyed()),
        mediator.send(ChargeCard(amount=5), keyed()),
    )

    assert handler.calls == 1
    succeeded = [r for r in results if r.is_success]
    rejected = [r for r in results if not r.is_success]
    assert len(succeeded) == 1
    assert len(rejected) == 1
    assert rejected[0].error is not None
    assert rejected[0].error.code == INBOX_IN_PROGRESS
    record = await inbox_store.get("msg-1")
    assert record is not None
    assert record.is_processed


@pytest.mark.asyncio()
async def test_concurrent_duplicates_of_a_retry_run_the_handler_once(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)
    handler.outcomes = ["fail", "slow", "slow"]
    await mediator.send(ChargeCard(amount=5), keyed())
    clock.advance(timedelta(minutes=5))

    results = await asyncio.gather(
        mediator.send(ChargeCard(amount=5), keyed()),
        mediator.send(ChargeCard(amount=5), keyed()),
    )

    assert handler.calls == 2
    assert sorted(r.is_success for r in results) == [False, True]
    record = await inbox_store.get("msg-1")
    assert record is not None
    assert record.is_processed
    assert record.retry_count == 0


@pytest.mark.asyncio()
async def test_lost_claim_reports_in_progress(clock: ManualClock) -> None:
    store = StaleReadInboxStore(clock)
    await store.add(InboxRecord(message_id="msg-1", request_type="x:Y"))
    await store.save()
    mediator, handler = build(store, clock)

    result = await mediator.send(ChargeCard(amount=5), keyed())

    assert handler.calls == 0
    assert result.error is not None
    assert result.error.code == INBOX_IN_PROGRESS
    assert result.error.details["message_id"] == "msg-1"


# ═══════════════════════════════════════════════════════════════════════
# Failures and retries
# ═══════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio()
async def test_failed_result_records_error(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)
    handler.outcomes = ["fail"]

    result = await mediator.send(ChargeCard(amount=5), keyed())

    assert result.error is not None
    assert result.error.code == "payments.declined"
    record = await inbox_store.get("msg-1")
    assert record is not None
    assert not record.is_processed
    assert record.retry_count == 0
    assert record.error_message == "[payments.declined] Card declined"
    assert record.next_retry_at == clock.now() + timedelta(seconds=10)


@pytest.mark.asyncio()
async def test_handler_exception_recorded_and_reraised(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)
    handler.outcomes = ["raise"]

    with pytest.raises(ConnectionError):
        await mediator.send(ChargeCard(amount=5), keyed())

    record = await inbox_store.get("msg-1")
    assert record is not None
    assert record.error_message == "ConnectionError: gateway timeout"
    assert record.retry_count == 0


@pytest.mark.asyncio()
async def test_not_yet_retryable_short_circuits(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)
    handler.outcomes = ["fail"]
    await mediator.send(ChargeCard(amount=5), keyed())

    clock.advance(5)
    result = await mediator.send(ChargeCard(amount=5), keyed())

    assert handler.calls == 1
    assert result.error is not None
    assert result.error.code == INBOX_NOT_YET_RETRYABLE
    assert result.error.is_transient
    assert result.error.details["retry_after"] == clock.now() + timedelta(seconds=5)


@pytest.mark.asyncio()
async def test_due_retry_succeeds_and_caches(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)
    handler.outcomes = ["fail", "ok"]
    await mediator.send(ChargeCard(amount=5), keyed())

    clock.advance(10)
    retried = await mediator.send(ChargeCard(amount=5), keyed())
    duplicate = await mediator.send(ChargeCard(amount=5), keyed())

    assert handler.calls == 2
    assert retried.is_success
    assert duplicate.value == retried.value
    record = await inbox_store.get("msg-1")
    assert record is not None
    assert record.is_processed
    assert record.error_message is None


@pytest.mark.asyncio()
async def test_repeated_failures_back_off(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)
    handler.outcomes = ["fail", "fail", "fail"]
    await mediator.send(ChargeCard(amount=5), keyed())

    clock.advance(10)
    await mediator.send(ChargeCard(amount=5), keyed())
    record = await inbox_store.get("msg-1")
    assert record is not None
    assert record.retry_count == 1
    assert record.next_retry_at == clock.now() + timedelta(seconds=20)

    clock.advance(20)
    await mediator.send(ChargeCard(amount=5), keyed())
    record = await inbox_store.get("msg-1")
    assert record is not None
    assert record.retry_count == 2
    assert record.next_retry_at == clock.now() + timedelta(seconds=40)


@pytest.mark.asyncio()
async def test_record_at_retry_two_of_three_is_reinvoked(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)
    await inbox_store.add(
        InboxRecord(
            message_id="msg-1",
            request_type="x:ChargeCard",
            received_at=clock.now() - timedelta(hours=1),
            expires_at=clock.now() + timedelta(days=1),
            error_message="[payments.declined] Card declined",
            retry_count=2,
            next_retry_at=clock.now() - timedelta(seconds=1),
        )
    )
    await inbox_store.save()

    result = await mediator.send(ChargeCard(amount=5), keyed())

    assert handler.calls == 1
    assert result.is_success
    record = await inbox_store.get("msg-1")
    assert record is not None
    assert record.is_processed


@pytest.mark.asyncio()
async def test_retries_exhausted_is_terminal(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)
    handler.outcomes = ["fail"] * 10

    await mediator.send(ChargeCard(amount=5), keyed())
    for _ in range(3):
        clock.advance(timedelta(hours=1))
        await mediator.send(ChargeCard(amount=5), keyed())
    assert handler.calls == 4

    record = await inbox_store.get("msg-1")
    assert record is not None
    assert record.retry_count == 3
    assert record.next_retry_at is None

    clock.advance(timedelta(days=1))
    result = await mediator.send(ChargeCard(amount=5), keyed())

    assert handler.calls == 4
    assert result.error is not None
    assert result.error.code == INBOX_MAX_RETRIES_EXCEEDED
    assert not result.error.is_transient
    assert result.error.details["retry_count"] == 3
    assert result.error.message == "Request msg-1 gave up after 3 retries"


@pytest.mark.asyncio()
async def test_failure_record_survives_handler_rollback(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    registry = HandlerRegistry()
    handler = ChargeHandler()
    handler.outcomes = ["fail"]
    registry.register(ChargeCard, handler)
    uows: list[InMemoryUnitOfWork] = []

    def uow_factory() -> InMemoryUnitOfWork:
        uows.append(InMemoryUnitOfWork())
        return uows[-1]

    mediator = Mediator(
        registry,
        uow_factory,
        middlewares=[InboxMiddleware(inbox_store, options=OPTIONS, clock=clock)],
    )

    await mediator.send(ChargeCard(amount=5), keyed())

    assert uows[0].rolled_back
    assert await inbox_store.get("msg-1") is not None


# ═══════════════════════════════════════════════════════════════════════
# Unusual records
# ═══════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio()
async def test_record_without_outcome_reports_in_progress(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)
    await inbox_store.add(InboxRecord(message_id="msg-1", request_type="x:Y"))
    await inbox_store.save()

    result = await mediator.send(ChargeCard(amount=5), keyed())

    assert handler.calls == 0
    assert result.error is not None
    assert result.error.code == INBOX_IN_PROGRESS


@pytest.mark.asyncio()
async def test_unreadable_cache_reports_deserialization_failure(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock)
    await inbox_store.add(
        InboxRecord(
            message_id="msg-1",
            processed_at=clock.now(),
            cached_response=json.dumps({"type": "gone.module:Thing", "value": {}}),
        )
    )
    await inbox_store.save()

    result = await mediator.send(ChargeCard(amount=5), keyed())

    assert handler.calls == 0
    assert result.error is not None
    assert result.error.code == INBOX_DESERIALIZATION_FAILED


# ═══════════════════════════════════════════════════════════════════════
# Purge
# ═══════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio()
async def test_purge_removes_expired_records_only(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    mediator, handler = build(inbox_store, clock, InboxOptions(ttl=60))
    handler.outcomes = ["ok", "fail"]
    await mediator.send(ChargeCard(amount=1), keyed("old-ok"))
    await mediator.send(ChargeCard(amount=1), keyed("old-failed"))
    clock.advance(30)
    await mediator.send(ChargeCard(amount=1), keyed("fresh"))
    clock.advance(31)

    purged = await InboxPurgeService(inbox_store, InboxOptions(ttl=60)).purge_expired()

    assert purged == 2
    assert [r.message_id for r in inbox_store.all()] == ["fresh"]


@pytest.mark.asyncio()
async def test_purge_respects_batch_size(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    for i in range(5):
        await inbox_store.add(
            InboxRecord(message_id=f"m{i}", expires_at=clock.now() - timedelta(minutes=i))
        )
    await inbox_store.save()
    service = InboxPurgeService(inbox_store, InboxOptions(purge_batch_size=2))

    assert await service.purge_expired() == 2
    assert await service.purge_expired() == 2
    assert await service.purge_expired() == 1
    assert await service.purge_expired() == 0


@pytest.mark.asyncio()
async def test_purged_key_is_handled_as_new(
    inbox_store: InMemoryInboxStore, clock: ManualClock
) -> None:
    options = InboxOptions(ttl=60)
    mediator, handler = build(inbox_store, clock, options)
    await mediator.send(ChargeCard(amount=1), keyed())
    clock.advance(61)
    await InboxPurgeService(inbox_store, options).purge_expired()

    await mediator.send(ChargeCard(amount=1), keyed())

    assert handler.calls == 2
