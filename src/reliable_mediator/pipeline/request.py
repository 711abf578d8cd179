"""Request and Notification base models plus the opt-in markers."""

from __future__ import annotations

import typing
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any, Generic, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import TypeVar

from ..correlation import get_correlation_id

TResult = TypeVar("TResult", default=None)


class Request(BaseModel, Generic[TResult]):
    """
    Base for everything sent through the :class:`~.mediator.Mediator`.

    The ``correlation_id`` is inherited from the current context when the
    request is created inside another request's scope. Otherwise the mediator
    assigns one at dispatch time.
    """

    model_config = ConfigDict(frozen=True)

    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    correlation_id: str | None = Field(default_factory=get_correlation_id)

    @classmethod
    def response_type(cls) -> Any:
        """The ``TResult`` this request class was declared with.

        ``None`` when the class left it open or declared ``None``. The inbox
        uses it to cache and restore responses whose runtime type alone is
        ambiguous, such as ``list[Payment]``.
        """
        for klass in cls.__mro__:
            metadata = getattr(klass, "__pydantic_generic_metadata__", None)
            if not metadata or metadata["origin"] is None or not metadata["args"]:
                continue
            if not issubclass(metadata["origin"], Request):
                continue
            declared = metadata["args"][0]
            if isinstance(declared, typing.TypeVar):
                continue
            return None if declared in (None, type(None)) else declared
        return None


class Notification(BaseModel):
    """A fact emitted by a successful handler and delivered via the outbox."""

    model_config = ConfigDict(frozen=True)

    notification_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: str | None = Field(default_factory=get_correlation_id)


class IdempotentRequest(Request[TResult]):
    """Request that opts in to inbox de-duplication.

    The key normally travels in
    :attr:`~.context.RequestContext.idempotency_key`. Override
    :meth:`idempotency_key` when the request itself carries a natural key
    (a payment reference, a client-generated id).
    """

    def idempotency_key(self) -> str | None:
        return None


@runtime_checkable
class HasNotifications(Protocol):
    """Requests whose handlers stash notifications on the request itself.

    Handlers can also return notifications through
    :attr:`~reliable_mediator.primitives.result.RequestResult.notifications`.
    """

    def get_notifications(self) -> Sequence[Notification]:
        ...
