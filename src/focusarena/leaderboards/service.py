"""Ranked views over users, recomputed on every read.

Every scope (global, university, friends, subject, campus) shares one query:
completed sessions inside the reporting window are summed per user, users
without such a session are dropped for windowed periods, and the rows are
ordered by lifetime XP (ties broken by ascending id). The windowed sums are
reported as ``periodXP``/``periodHours`` but do not affect the order.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from focusarena.db.models import Friendship, StudySession, User
from focusarena.pagination import Pagination, offset_for, page_info
from focusarena.periods import normalize_period, window_start

SORT_KEY = "xp"


@dataclass(frozen=True)
class LeaderboardPage:
    period: str
    entries: list[dict[str, Any]]
    pagination: Pagination


async def build_leaderboard(
    db: AsyncSession,
    *,
    period: str,
    page: int = 1,
    limit: int = 20,
    user_filters: tuple[Any, ...] = (),
    subject: str | None = None,
    now: datetime | None = None,
) -> LeaderboardPage:
    """Rank users matching ``user_filters`` over ``period``.

    ``all`` without a subject reports lifetime totals for every matching
    user; any window or subject restricts the board to users with at least
    one qualifying completed session.
    """
    now = now or datetime.now(timezone.utc)
    period = normalize_period(period)
    start = window_start(period, now)

    base = select(User).where(User.is_active.is_(True), *user_filters)

    if start is None and subject is None:
        period_xp = User.xp
        period_minutes = User.total_study_hours * 60
        query = base.add_columns(period_xp.label("period_xp"), period_minutes.label("period_minutes"))
    else:
        sums = select(
            StudySession.user_id.label("user_id"),
            func.sum(StudySession.xp_earned).label("period_xp"),
            func.sum(StudySession.duration).label("period_minutes"),
        ).where(StudySession.completed.is_(True), StudySession.start_time < now)
        if start is not None:
            sums = sums.where(StudySession.start_time >= start)
        if subject is not None:
            sums = sums.where(func.lower(StudySession.subject) == subject.lower())
        window = sums.group_by(StudySession.user_id).subquery()
        query = base.join(window, window.c.user_id == User.id).add_columns(
            window.c.period_xp, window.c.period_minutes
        )

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()

    offset = offset_for(page, limit)
    result = await db.execute(
        query.options(selectinload(User.university))
        .order_by(User.xp.desc(), User.id.asc())
        .offset(offset)
        .limit(limit)
    )

    entries = []
    for rank, (user, xp_in_period, minutes_in_period) in enumerate(result.all(), start=offset + 1):
        university = user.university
        entries.append({
            "rank": rank,
            "id": user.id,
            "name": user.name,
            "avatar_url": user.avatar_url,
            "xp": user.xp,
            "level": user.level,
            "streak_count": user.streak_count,
            "total_study_hours": user.total_study_hours,
            "university": (
                {"id": university.id, "name": university.name, "country": university.country, "city": university.city}
                if university is not None
                else None
            ),
            "period_xp": int(xp_in_period or 0),
            "period_hours": float(minutes_in_period or 0) / 60,
        })

    return LeaderboardPage(period=period, entries=entries, pagination=page_info(page, limit, total))


async def accepted_friend_ids(db: AsyncSession, user_id: int) -> list[int]:
    """Ids of users with an accepted friendship with ``user_id``, in either direction."""
    result = await db.execute(
        select(Friendship.user_id, Friendship.friend_id).where(
            Friendship.status == "accepted",
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
        )
    )
    return [friend if owner == user_id else owner for owner, friend in result.all()]
