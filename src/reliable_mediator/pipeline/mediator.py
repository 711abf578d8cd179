"""Mediator — routes requests through middleware into a unit of work."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..correlation import correlation_scope, generate_correlation_id, get_correlation_id
from ..primitives.exceptions import HandlerNotFoundError
from ..primitives.result import RequestResult
from .context import RequestContext
from .pipeline import build_pipeline

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ..ports.middleware import IMiddleware, IPostProcessor
    from ..ports.unit_of_work import UnitOfWork
    from .registry import HandlerRegistry

logger = logging.getLogger("reliable_mediator.mediator")


class Mediator:
    """Dispatches a request to its handler.

    Middleware (the inbox gate, typically) wraps the whole call and sees no
    unit of work. Innermost, the mediator opens a unit of work, runs the
    handler and then every post-processor (the outbox capture) with the same
    unit of work, and commits only when the result is a success. A failed
    result or an exception rolls everything back; exceptions then propagate.

    Parameters
    ----------
    registry:
        :class:`~reliable_mediator.pipeline.registry.HandlerRegistry` instance.
    uow_factory:
        Callable returning a fresh :class:`UnitOfWork` per request.
    middlewares:
        Outermost first.
    post_processors:
        Run in order after the handler, inside the unit of work.
    handler_factory:
        Optional ``(handler_cls) -> handler_instance`` for class registrations.
        Defaults to ``handler_cls()``.
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        uow_factory: Callable[[], UnitOfWork],
        *,
        middlewares: Sequence[IMiddleware] = (),
        post_processors: Sequence[IPostProcessor] = (),
        handler_factory: Callable[[type[Any]], Any] | None = None,
    ) -> None:
        self._registry = registry
        self._uow_factory = uow_factory
        self._middlewares = list(middlewares)
        self._post_processors = list(post_processors)
        self._handler_factory: Callable[[type[Any]], Any] = handler_factory or (
            lambda cls: cls()
        )

    async def send(
        self, request: Any, context: RequestContext | None = None
    ) -> RequestResult[Any]:
        """Dispatch *request* and return its :class:`RequestResult`.

        Raises:
            HandlerNotFoundError: no handler is registered for the request type.
        """
        handler = self._resolve(type(request))
        context = context or RequestContext()
        correlation_id = (
            context.correlation_id
            or getattr(request, "correlation_id", None)
            or get_correlation_id()
            or generate_correlation_id()
        )
        if context.correlation_id != correlation_id:
            context = context.with_correlation_id(correlation_id)

        async def _core(req: Any, ctx: RequestContext) -> RequestResult[Any]:
            return await self._run_in_unit_of_work(handler, req, ctx)

        pipeline = build_pipeline(self._middlewares, _core)
        with correlation_scope(correlation_id):
            return await pipeline(request, context)

    # ── Internals ────────────────────────────────────────────────

    def _resolve(self, request_type: type[Any]) -> Any:
        entry = self._registry.get(request_type)
        if entry is None:
            raise HandlerNotFoundError(request_type)
        return self._handler_factory(entry) if isinstance(entry, type) else entry

    async def _run_in_unit_of_work(
        self, handler: Any, request: Any, context: RequestContext
    ) -> RequestResult[Any]:
        uow = self._uow_factory()
        scoped = context.with_unit_of_work(uow)
        try:
            result = _as_result(await handler.handle(request, scoped))
            for post_processor in self._post_processors:
                await post_processor.process(request, scoped, result)
        except BaseException:
            logger.debug(
                "Rolling back %s (correlation_id=%s) after exception",
                type(request).__name__,
                context.correlation_id,
            )
            await uow.rollback()
            raise

        if result.is_success:
            await uow.commit()
        else:
            logger.debug(
                "Rolling back %s (correlation_id=%s): %s",
                type(request).__name__,
                context.correlation_id,
                result.error.code if result.error else None,
            )
            await uow.rollback()
        return result


def _as_result(value: Any) -> RequestResult[Any]:
    if isinstance(value, RequestResult):
        return value
    return RequestResult.success(value)
