"""Quick date ranges offered by the profit and activity reports."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional, Tuple

PROFIT_RANGES = ("today", "7", "month", "lastmonth", "ytd")
ACTIVITY_RANGES = ("today", "yesterday", "day_before", "last7", "last30")


def ymd(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def quick_range(key: str, today: Optional[date] = None) -> Tuple[str, str]:
    """Return ``(from, to)`` ISO dates for a profit report shortcut."""

    now = today or date.today()
    if key == "today":
        return ymd(now), ymd(now)
    if key == "7":
        return ymd(now - timedelta(days=6)), ymd(now)
    if key == "month":
        return ymd(now.replace(day=1)), ymd(now)
    if key == "lastmonth":
        last_day = now.replace(day=1) - timedelta(days=1)
        return ymd(last_day.replace(day=1)), ymd(last_day)
    if key == "ytd":
        return ymd(date(now.year, 1, 1)), ymd(now)
    raise ValueError(f"Unknown quick range '{key}'; expected one of {PROFIT_RANGES}")


def activity_range(key: str, today: Optional[date] = None) -> Tuple[str, str]:
    """Return ``(from, to)`` ISO dates for a recent-activity shortcut."""

    now = today or date.today()
    if key == "today":
        return ymd(now), ymd(now)
    if key == "yesterday":
        day = now - timedelta(days=1)
        return ymd(day), ymd(day)
    if key == "day_before":
        day = now - timedelta(days=2)
        return ymd(day), ymd(day)
    if key == "last7":
        return ymd(now - timedelta(days=6)), ymd(now)
    if key == "last30":
        return ymd(now - timedelta(days=29)), ymd(now)
    raise ValueError(f"Unknown activity range '{key}'; expected one of {ACTIVITY_RANGES}")
