"""BackoffPolicy — capped exponential delay between retry attempts."""

from __future__ import annotations

from datetime import datetime, timedelta


class BackoffPolicy:
    """Deterministic exponential backoff.

    ``delay(attempt) = min(base * 2 ** (attempt - 1), cap)`` for 1-based
    attempts. No jitter: the retry time of a record must only move forward
    as its retry count grows.
    """

    def __init__(self, *, base: float = 1.0, cap: float = 300.0) -> None:
        """Configure the policy.

        Args:
            base: Delay in seconds after the first failed attempt.
            cap: Upper bound on any single delay, in seconds.
        """
        if base <= 0:
            raise ValueError("base must be > 0")
        if cap < base:
            raise ValueError("cap must be >= base")
        self.base = base
        self.cap = cap

    def delay(self, attempt: int) -> float:
        """Return the delay in seconds for the given 1-based attempt."""
        if attempt < 1:
            return 0.0
        # Exponent bounded to keep the float arithmetic finite.
        exponent = min(attempt - 1, 62)
        return float(min(self.base * (2**exponent), self.cap))

    def next_retry_at(self, now: datetime, attempt: int) -> datetime:
        """Return ``now`` shifted by :meth:`delay` for *attempt*."""
        return now + timedelta(seconds=self.delay(attempt))

    def __repr__(self) -> str:
        return f"BackoffPolicy(base={self.base!r}, cap={self.cap!r})"
