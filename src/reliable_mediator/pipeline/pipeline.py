"""build_pipeline — construct the middleware chain."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from ..ports.middleware import IMiddleware
    from ..primitives.result import RequestResult
    from .context import RequestContext

    Dispatch = Callable[[Any, RequestContext], Awaitable[RequestResult[Any]]]


def build_pipeline(
    middlewares: Sequence[IMiddleware],
    handler_fn: Dispatch,
) -> Dispatch:
    """Build a LIFO middleware chain ending at *handler_fn*.

    The first middleware in the list is the **outermost** wrapper. Each
    middleware receives ``(request, context, next_handler)`` where
    ``next_handler`` takes no arguments and runs the rest of the chain with
    the same request and context.
    """
    pipeline: Dispatch = handler_fn

    for mw in reversed(middlewares):
        current_next = pipeline  # capture for closure

        async def _wrapper(
            request: Any,
            context: RequestContext,
            _mw: IMiddleware = mw,
            _next: Dispatch = current_next,
        ) -> RequestResult[Any]:
            return await _mw(request, context, lambda: _next(request, context))

        pipeline = _wrapper

    return pipeline
