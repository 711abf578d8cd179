"""OutboxPostProcessor — captures handler notifications in the outbox."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..config import OutboxOptions
from ..pipeline.request import HasNotifications
from ..ports.middleware import IPostProcessor
from ..ports.outbox import OutboxRecord
from ..primitives.clock import SystemClock
from ..serialization import JsonSerializer

if TYPE_CHECKING:
    from ..pipeline.context import RequestContext
    from ..ports.outbox import IOutboxStore
    from ..ports.serializer import ISerializer
    from ..primitives.clock import IClock
    from ..primitives.result import RequestResult

logger = logging.getLogger("reliable_mediator.outbox")


class OutboxPostProcessor(IPostProcessor):
    """Writes one :class:`OutboxRecord` per notification of a successful request.

    Records join ``context.unit_of_work``, so they are committed together with
    the handler's own writes or not at all. Failed results emit nothing.
    Notifications come from ``request.get_notifications()`` (requests
    implementing :class:`HasNotifications`) and from
    ``result.notifications``.
    """

    def __init__(
        self,
        store: IOutboxStore,
        serializer: ISerializer | None = None,
        *,
        options: OutboxOptions | None = None,
        clock: IClock | None = None,
    ) -> None:
        self._store = store
        self._serializer = serializer or JsonSerializer()
        self._options = options or OutboxOptions()
        self._clock = clock or SystemClock()

    async def process(
        self,
        request: Any,
        context: RequestContext,
        result: RequestResult[Any],
    ) -> None:
        if not self._options.enabled or not result.is_success:
            return

        notifications: list[Any] = []
        if isinstance(request, HasNotifications):
            notifications.extend(request.get_notifications())
        notifications.extend(result.notifications)
        if not notifications:
            return

        uow = context.unit_of_work
        now = self._clock.now()
        for notification in notifications:
            record = OutboxRecord(
                notification_type=self._serializer.type_token(notification),
                content=self._serializer.serialize(notification),
                created_at=now,
                correlation_id=context.correlation_id,
            )
            await self._store.add(record, uow=uow)
        await self._store.save(uow=uow)
        logger.debug(
            "Captured %d notifications for %s (correlation_id=%s)",
            len(notifications),
            type(request).__name__,
            context.correlation_id,
        )
