"""Pipeline hook protocols — pre-handler middleware and post-processors."""

from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Any,
    Protocol,
    runtime_checkable,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ..pipeline.context import RequestContext
    from ..primitives.result import RequestResult


@runtime_checkable
class IMiddleware(Protocol):
    """Protocol for middleware in the request pipeline.

    Middleware wraps handler invocation and can inspect the request,
    short-circuit execution, or perform side-effects.
    The first registered middleware is the outermost wrapper.
    """

    async def __call__(
        self,
        request: Any,
        context: RequestContext,
        next_handler: Callable[[], Awaitable[RequestResult[Any]]],
    ) -> RequestResult[Any]:
        """Execute middleware logic and call next_handler to proceed.

        Parameters
        ----------
        request:
            The incoming request.
        context:
            Ambient request metadata (correlation, idempotency key, UoW).
        next_handler:
            Async callable representing the rest of the pipeline.
        """
        ...


@runtime_checkable
class IPostProcessor(Protocol):
    """Runs after the handler, inside the request's unit of work."""

    async def process(
        self,
        request: Any,
        context: RequestContext,
        result: RequestResult[Any],
    ) -> None:
        """Observe the handler result. Raising aborts the unit of work."""
        ...
