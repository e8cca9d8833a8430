"""
Date and Period Helpers.

All timestamps inside FinSync are timezone-aware UTC.  Period windows are
half-open ``[start, end)`` so consecutive months never overlap.
"""

from __future__ import annotations

from datetime import datetime, timezone

__all__ = ["ensure_utc", "month_bounds", "shift_month", "utc_now"]


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(tz=timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime.

    Naive values are assumed to already be UTC (the remote store and
    the snapshot table both persist ISO-8601 UTC strings).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Return the ``[first-of-month, first-of-next-month)`` window containing *now*."""
    now = ensure_utc(now)
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def shift_month(month_start: datetime, months: int) -> datetime:
    """Move a first-of-month datetime by *months* (negative goes back)."""
    index = month_start.year * 12 + month_start.month - 1 + months
    return month_start.replace(year=index // 12, month=index % 12 + 1)
