"""UnitOfWork — Abstract base class for the Unit of Work pattern."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger("reliable_mediator.uow")


class UnitOfWork(ABC):
    """
    Abstract base class for Unit of Work implementations.

    The mediator opens one unit of work per request and hands it to the
    handler and to post-processors through
    :attr:`~reliable_mediator.pipeline.context.RequestContext.unit_of_work`.
    Domain writes and outbox records that join the same unit of work commit
    or roll back together.

    Hooks registered with :meth:`on_commit` fire only **after** a successful
    commit. A rollback discards them.

    Example:
        ```python
        class SQLAlchemyUnitOfWork(UnitOfWork):
            def __init__(self, session):
                super().__init__()
                self.session = session

            async def _commit(self):
                await self.session.commit()

            async def _rollback(self):
                await self.session.rollback()
        ```
    """

    def __init__(self) -> None:
        self._on_commit_hooks: deque[Callable[[], Awaitable[Any]]] = deque()

    def on_commit(self, callback: Callable[[], Awaitable[Any]]) -> None:
        """Register an async callback to be executed after a successful commit.

        Args:
            callback: An async function that takes no arguments.
        """
        self._on_commit_hooks.append(callback)

    async def trigger_commit_hooks(self) -> None:
        """Execute all registered on_commit hooks, in registration order."""
        while self._on_commit_hooks:
            callback = self._on_commit_hooks.popleft()
            try:
                await callback()
            except Exception as exc:
                logger.error("Error in on_commit hook: %s", exc, exc_info=True)

    async def commit(self) -> None:
        """Commit the transaction, then fire the post-commit hooks."""
        await self._commit()
        await self.trigger_commit_hooks()

    async def rollback(self) -> None:
        """Roll back the transaction and drop pending hooks."""
        self._on_commit_hooks.clear()
        await self._rollback()

    @abstractmethod
    async def _commit(self) -> None:
        """Backend commit. Must be implemented by subclasses."""
        ...

    @abstractmethod
    async def _rollback(self) -> None:
        """Backend rollback. Must be implemented by subclasses."""
        ...

    async def __aenter__(self) -> UnitOfWork:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Commit on a clean exit, roll back when an exception escapes."""
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()
