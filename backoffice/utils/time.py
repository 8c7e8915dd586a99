"""Time utilities (UTC now, inclusive day ranges)."""
from __future__ import annotations
from datetime import date, datetime, time, timezone

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def day_range(start: date, end: date) -> tuple[datetime, datetime]:
    """Naive [start 00:00:00, end 23:59:59.999999] bounds covering both days."""
    return datetime.combine(start, time.min), datetime.combine(end, time.max)

__all__ = ["utc_now", "day_range"]
