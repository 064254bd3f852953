"""Aggregation of completed sessions into period reports."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

UNCATEGORIZED = "Uncategorized"


class _SessionLike(Protocol):
    duration: int
    xp_earned: int
    subject: str | None
    start_time: datetime


def _bucket() -> dict[str, int]:
    return {"duration": 0, "sessions": 0, "xp": 0}


def summarize_sessions(sessions: Iterable[_SessionLike]) -> dict:
    """Totals plus per-subject and per-day breakdowns.

    Days are keyed by the ISO date of each session's start time; sessions
    without a subject are grouped under ``Uncategorized``.
    """
    total_duration = 0
    total_xp = 0
    count = 0
    by_subject: dict[str, dict[str, int]] = {}
    by_day: dict[str, dict[str, int]] = {}

    for s in sessions:
        total_duration += s.duration
        total_xp += s.xp_earned
        count += 1
        for key, buckets in ((s.subject or UNCATEGORIZED, by_subject), (s.start_time.date().isoformat(), by_day)):
            bucket = buckets.setdefault(key, _bucket())
            bucket["duration"] += s.duration
            bucket["sessions"] += 1
            bucket["xp"] += s.xp_earned

    return {
        "total_duration": total_duration,
        "total_xp": total_xp,
        "session_count": count,
        "average_duration": total_duration / count if count else 0,
        "subject_breakdown": by_subject,
        "daily_breakdown": by_day,
    }
