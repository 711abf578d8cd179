"""PollingWorker — trigger + polling background loop shared by all patterns."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .instrumentation import get_hook_registry
from .ports.background_worker import IBackgroundWorker

if TYPE_CHECKING:
    from .instrumentation import HookRegistry

logger = logging.getLogger("reliable_mediator.workers")


class PollingWorker(IBackgroundWorker, ABC):
    """Reactive worker that runs one batch per wake-up.

    Wakes every ``poll_interval`` seconds, or immediately after
    :meth:`trigger`. The running flag is checked between batches only, so a
    batch that has started always finishes its store writes before the loop
    exits.

    Subclasses implement :meth:`_process` and return the number of records
    they handled.
    """

    #: Instrumentation operation name for one batch.
    operation: str = "worker.batch"

    def __init__(
        self,
        *,
        poll_interval: float,
        enabled: bool = True,
        hook_registry: HookRegistry | None = None,
        name: str | None = None,
    ) -> None:
        self._poll_interval = poll_interval
        self._enabled = enabled
        self._hook_registry = hook_registry
        self._name = name or type(self).__name__
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._trigger = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    def trigger(self) -> None:
        """Wake the worker immediately."""
        self._trigger.set()

    async def start(self) -> None:
        if not self._enabled:
            logger.info("%s disabled, not starting", self._name)
            return
        if self._running:
            return
        self._running = True
        self._trigger.clear()
        self._task = asyncio.create_task(self._run_loop(), name=self._name)
        logger.info("%s started (poll_interval=%.1fs)", self._name, self._poll_interval)

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop after the current batch; cancel if it outlives *timeout*."""
        if self._task is None:
            return
        self._running = False
        self._trigger.set()
        task, self._task = self._task, None
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "%s did not stop within %.1fs, cancelling", self._name, timeout
            )
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("%s stopped", self._name)

    async def run_once(self) -> int:
        """Execute a single processing cycle (useful in tests)."""
        registry = self._hook_registry or get_hook_registry()
        attributes: dict[str, Any] = {"worker": self._name}
        count: int = await registry.execute_all(
            self.operation, attributes, self._process
        )
        return count

    async def _run_loop(self) -> None:
        while self._running:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(
                    self._trigger.wait(), timeout=self._poll_interval
                )
            self._trigger.clear()
            if not self._running:
                break
            try:
                await self.run_once()
            except Exception:
                logger.exception("%s error", self._name)

    @abstractmethod
    async def _process(self) -> int:
        """Handle one batch; return how many records were touched."""
        ...


@dataclass(frozen=True)
class BatchSummary:
    """Outcome counts of one dispatcher batch."""

    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    dead_lettered: int = 0
