"""Aggregate progression state that achievement conditions are evaluated against."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from focusarena.db.models import StudySession, User
from focusarena.periods import today_start, window_start


@dataclass
class UserStats:
    """Snapshot of a user's totals at one instant."""

    user_id: int
    xp: int = 0
    level: int = 1
    streak_count: int = 0
    total_study_hours: float = 0.0
    completed_sessions: int = 0
    subject_sessions: dict[str, int] = field(default_factory=dict)
    minutes_today: int = 0
    minutes_week: int = 0


async def load_user_stats(db: AsyncSession, user_id: int, now: datetime | None = None) -> UserStats | None:
    """Build a ``UserStats`` snapshot from the store. Returns None for unknown users."""
    now = now or datetime.now(timezone.utc)
    user = (
        await db.execute(
            select(User.xp, User.level, User.streak_count, User.total_study_hours).where(User.id == user_id)
        )
    ).one_or_none()
    if user is None:
        return None

    completed = (StudySession.user_id == user_id, StudySession.completed.is_(True))

    count_rows = await db.execute(
        select(StudySession.subject, func.count(StudySession.id))
        .where(*completed)
        .group_by(StudySession.subject)
    )
    subject_sessions: dict[str, int] = {}
    total = 0
    for subject, count in count_rows.all():
        total += count
        if subject:
            subject_sessions[subject] = count

    minutes_today = await _minutes_since(db, user_id, today_start(now))
    minutes_week = await _minutes_since(db, user_id, window_start("week", now))  # type: ignore[arg-type]

    return UserStats(
        user_id=user_id,
        xp=user.xp,
        level=user.level,
        streak_count=user.streak_count,
        total_study_hours=user.total_study_hours,
        completed_sessions=total,
        subject_sessions=subject_sessions,
        minutes_today=minutes_today,
        minutes_week=minutes_week,
    )


async def _minutes_since(db: AsyncSession, user_id: int, start: datetime) -> int:
    result = await db.execute(
        select(func.coalesce(func.sum(StudySession.duration), 0)).where(
            StudySession.user_id == user_id,
            StudySession.completed.is_(True),
            StudySession.start_time >= start,
        )
    )
    return int(result.scalar_one())
