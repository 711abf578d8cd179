"""IBackgroundWorker — lifecycle protocol for the polling loops."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class IBackgroundWorker(Protocol):
    """
    Lifecycle protocol for background workers.

    Used by: ``OutboxWorker``, ``ScheduledMessageWorker``,
    ``SagaRecoveryWorker``, ``InboxPurgeWorker``. Hosts call :meth:`start`
    at boot and :meth:`stop` on shutdown.
    """

    async def start(self) -> None:
        """Start the loop. A no-op when already running or disabled."""
        ...

    async def stop(self, timeout: float = 5.0) -> None:
        """Let the in-flight batch finish, then exit.

        The loop task is cancelled if it has not exited after *timeout*
        seconds.
        """
        ...
