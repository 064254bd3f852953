"""Reporting windows shared by analytics, stats and leaderboards.

All boundaries are computed in UTC.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

PERIODS = ("day", "week", "month", "all")
DEFAULT_PERIOD = "week"


def normalize_period(period: str | None, default: str = DEFAULT_PERIOD) -> str:
    """Map unknown or missing period names to ``default``."""
    if period in PERIODS:
        return period  # type: ignore[return-value]
    return default


def window_start(period: str, now: datetime | None = None) -> datetime | None:
    """Inclusive start of the reporting window, or None for ``all``.

    ``day`` starts at midnight of the current day, ``week`` is a rolling
    seven days and ``month`` starts on the first of the current month.
    Unknown names are treated as ``week``.
    """
    now = now or datetime.now(timezone.utc)
    if period == "all":
        return None
    if period == "day":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "month":
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return now - timedelta(days=7)


def today_start(now: datetime | None = None) -> datetime:
    return window_start("day", now)  # type: ignore[return-value]
