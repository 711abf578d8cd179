"""InMemoryUnitOfWork — tracks commit/rollback calls for unit tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...ports.unit_of_work import UnitOfWork

if TYPE_CHECKING:
    from collections.abc import Callable


class InMemoryUnitOfWork(UnitOfWork):
    """In-memory implementation of UnitOfWork.

    The in-memory stores :meth:`enlist` their changes here. Committing runs
    every enlisted check before applying any change, so a conflicting write
    fails the commit itself and leaves the stores untouched. Rolling back
    throws the changes away. Commit and rollback calls are recorded for
    assertions.
    """

    def __init__(self) -> None:
        super().__init__()
        self.committed: bool = False
        self.rolled_back: bool = False
        self.commit_count: int = 0
        self.rollback_count: int = 0
        self._checks: list[Callable[[], None]] = []
        self._changes: list[Callable[[], None]] = []

    def enlist(
        self,
        change: Callable[[], None],
        check: Callable[[], None] | None = None,
    ) -> None:
        """Apply ``change`` at commit time, after ``check`` has passed."""
        if check is not None:
            self._checks.append(check)
        self._changes.append(change)

    async def _commit(self) -> None:
        checks, self._checks = self._checks, []
        changes, self._changes = self._changes, []
        for check in checks:
            check()
        for change in changes:
            change()
        self.committed = True
        self.commit_count += 1

    async def _rollback(self) -> None:
        self._discard()
        self.rolled_back = True
        self.rollback_count += 1

    def _discard(self) -> None:
        self._checks.clear()
        self._changes.clear()

    # ── Test helpers ─────────────────────────────────────────────

    def reset(self) -> None:
        """Reset commit/rollback tracking (for test setup)."""
        self._discard()
        self.committed = False
        self.rolled_back = False
        self.commit_count = 0
        self.rollback_count = 0


def in_memory_unit_of_work_factory() -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork()
