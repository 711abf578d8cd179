"""Handler base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from ..primitives.result import RequestResult
    from .context import RequestContext

TResult = TypeVar("TResult")


class RequestHandler(ABC, Generic[TResult]):
    """Base class for request handlers.

    Handlers must be registered explicitly with a ``HandlerRegistry``. They
    may return a :class:`RequestResult` or a bare value, which the mediator
    wraps as a success. Persistence should join ``context.unit_of_work``.

    Usage::

        class PlaceOrderHandler(RequestHandler[str]):
            async def handle(self, request, context) -> RequestResult[str]:
                await orders.add(order, uow=context.unit_of_work)
                return RequestResult.success(order.id, notifications=(OrderPlaced(...),))
    """

    @abstractmethod
    async def handle(
        self, request: Any, context: RequestContext
    ) -> RequestResult[TResult] | TResult:
        """Execute the request."""
        ...
