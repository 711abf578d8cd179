"""Clock port — every time-dependent decision goes through one of these."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class IClock(Protocol):
    """
    Protocol for reading the current time.

    Implementations must return timezone-aware UTC datetimes.
    """

    def now(self) -> datetime:
        """Return the current instant."""
        ...


class SystemClock(IClock):
    """Wall-clock implementation backed by :func:`datetime.now`."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
