"""Profile management and personal statistics."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from focusarena.cache import CacheClient, user_stats_key
from focusarena.db.models import University, User
from focusarena.errors import NotFoundError
from focusarena.gamification.level import level_progress
from focusarena.periods import normalize_period, window_start
from focusarena.sessions.analytics import summarize_sessions
from focusarena.sessions.service import completed_sessions_since

logger = structlog.get_logger()


async def load_profile(db: AsyncSession, user_id: int) -> User:
    """User with its university loaded."""
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.university))
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        msg = "User not found"
        raise NotFoundError(msg)
    return user


async def update_profile(db: AsyncSession, user: User, changes: dict[str, Any]) -> User:
    """Apply name, university and preference changes. Only keys present in ``changes`` are written."""
    if changes.get("university_id") is not None:
        if await db.get(University, changes["university_id"]) is None:
            msg = "University not found"
            raise NotFoundError(msg)

    for field in ("name", "university_id", "preferences"):
        if field in changes:
            setattr(user, field, changes[field])
    await db.commit()
    logger.info("profile_updated", user_id=user.id, fields=sorted(changes))
    return await load_profile(db, user.id)


async def update_avatar(db: AsyncSession, user: User, avatar_url: str) -> User:
    user.avatar_url = avatar_url
    await db.commit()
    return user


async def user_stats(
    db: AsyncSession,
    cache: CacheClient,
    user: User,
    period: str | None,
    *,
    ttl: int,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Lifetime progression plus a completed-session report for ``period``.

    Served from ``user:stats:{id}:{period}`` when cached; the entry is dropped
    whenever one of the user's sessions completes.
    """
    period = normalize_period(period)
    key = user_stats_key(user.id, period)
    cached = await cache.get_json(key)
    if cached is not None:
        return cached

    sessions = await completed_sessions_since(db, user.id, window_start(period, now))
    progress = level_progress(user.xp)
    stats = {
        "period": period,
        "current_stats": {
            "total_xp": user.xp,
            "level": user.level,
            "streak_count": user.streak_count,
            "total_study_hours": user.total_study_hours,
            "level_progress": progress["level_progress"],
            "next_level_xp": progress["xp_for_next_level"],
        },
        "period_stats": summarize_sessions(sessions),
    }
    await cache.set_json(key, stats, ttl=ttl)
    return stats
