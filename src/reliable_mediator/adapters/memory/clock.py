"""ManualClock — a clock that only moves when told to."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from ...primitives.clock import IClock
from ...utils import ensure_utc


class ManualClock(IClock):
    """Deterministic :class:`IClock` for tests and simulations."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = ensure_utc(start) if start else datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta | float) -> datetime:
        """Move forward by *delta* (a timedelta or seconds)."""
        if not isinstance(delta, timedelta):
            delta = timedelta(seconds=delta)
        self._now += delta
        return self._now

    def set(self, value: datetime) -> None:
        self._now = ensure_utc(value)
