"""ChangeBuffer — deferred mutations shared by the in-memory stores."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...primitives.exceptions import ConfigurationError
from .unit_of_work import InMemoryUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Callable

    from ...ports.unit_of_work import UnitOfWork


class ChangeBuffer:
    """Holds store mutations until they are flushed.

    Without a unit of work a change waits for the store's ``save()``. With
    one it is enlisted in the unit of work, so its commit applies it (and
    raises if a check fails) while a rollback drops it.

    ``check`` guards a change: it runs before any change of the same flush
    or commit is applied and raises to abort all of them.
    """

    def __init__(self) -> None:
        self._pending: list[tuple[Callable[[], None], Callable[[], None] | None]] = []

    def stage(
        self,
        change: Callable[[], None],
        uow: UnitOfWork | None = None,
        check: Callable[[], None] | None = None,
    ) -> None:
        if uow is None:
            self._pending.append((change, check))
            return
        if not isinstance(uow, InMemoryUnitOfWork):
            raise ConfigurationError(
                f"In-memory stores can only join an InMemoryUnitOfWork, "
                f"got {type(uow).__name__}"
            )
        uow.enlist(change, check)

    def flush(self) -> int:
        """Apply pending changes in staging order; return how many ran."""
        pending, self._pending = self._pending, []
        for _, check in pending:
            if check is not None:
                check()
        for change, _ in pending:
            change()
        return len(pending)

    def discard(self) -> None:
        self._pending.clear()

    def __len__(self) -> int:
        return len(self._pending)
