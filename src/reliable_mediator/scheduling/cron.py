"""Cron expressions for recurring scheduled messages."""

from __future__ import annotations

from datetime import datetime

from croniter import croniter

from ..utils import ensure_utc


def validate_cron(expression: str) -> str:
    """Return *expression* unchanged, or raise ``ValueError`` if it is invalid."""
    if not expression or not croniter.is_valid(expression):
        raise ValueError(f"Invalid cron expression {expression!r}")
    return expression


def next_occurrence(expression: str, after: datetime) -> datetime:
    """First occurrence of *expression* strictly after *after*, in UTC."""
    return ensure_utc(croniter(expression, ensure_utc(after)).get_next(datetime))
