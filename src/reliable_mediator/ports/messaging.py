"""IMessagePublisher — the transport the outbox dispatcher hands events to."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IMessagePublisher(Protocol):
    """
    Port for publishing notifications to a transport (RabbitMQ, Kafka, SQS, …).

    A publish that returns normally counts as delivered. Any exception marks
    the attempt as failed and schedules a retry.
    """

    async def publish(self, topic: str, message: Any, **kwargs: Any) -> None:
        """
        Publish *message* to *topic*.

        Args:
            topic: The notification type token.
            message: The deserialized notification.
            **kwargs: Transport metadata (``message_id``, ``correlation_id``, …).
        """
        ...
