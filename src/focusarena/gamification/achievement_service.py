"""Achievement evaluation, unlocking and reporting."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from focusarena.db.models import Achievement, User, UserAchievement
from focusarena.errors import ConflictError, NotFoundError
from focusarena.gamification.conditions import parse_condition
from focusarena.gamification.stats import load_user_stats
from focusarena.gamification.xp_service import grant_xp
from focusarena.notifications import events

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnlockedAchievement:
    """An achievement unlocked during one evaluation pass."""

    achievement: Achievement
    unlocked_at: datetime
    xp: int
    level: int


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


async def unlocked_achievement_ids(db: AsyncSession, user_id: int) -> set[int]:
    result = await db.execute(select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id))
    return set(result.scalars())


async def unlock_achievement(
    db: AsyncSession,
    user_id: int,
    achievement: Achievement,
    now: datetime | None = None,
) -> UnlockedAchievement | None:
    """Insert the unlock row and award its XP.

    Returns None if the pair already exists; the unique constraint on
    (user_id, achievement_id) is the arbiter when two writers race.
    """
    now = now or datetime.now(timezone.utc)
    try:
        async with db.begin_nested():
            db.add(UserAchievement(user_id=user_id, achievement_id=achievement.id, unlocked_at=now))
    except IntegrityError:
        return None  # Already unlocked by a concurrent pass

    progression = await grant_xp(db, user_id, achievement.xp_reward)
    logger.info("Achievement %r unlocked for user %d (+%d XP)", achievement.name, user_id, achievement.xp_reward)
    return UnlockedAchievement(
        achievement=achievement,
        unlocked_at=now,
        xp=progression.xp,
        level=progression.level,
    )


async def check_achievements(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
) -> list[UnlockedAchievement]:
    """Unlock every achievement whose condition the user currently satisfies.

    Single pass: conditions are evaluated against one snapshot taken before
    any unlock, so XP from an achievement unlocked here is only seen by the
    next pass. Runs in the caller's transaction; the caller commits.
    """
    now = now or datetime.now(timezone.utc)
    stats = await load_user_stats(db, user_id, now)
    if stats is None:
        msg = "User not found"
        raise NotFoundError(msg)

    already = await unlocked_achievement_ids(db, user_id)
    result = await db.execute(select(Achievement).order_by(Achievement.id))

    unlocked: list[UnlockedAchievement] = []
    for achievement in result.scalars().all():
        if achievement.id in already:
            continue
        condition = parse_condition(achievement.condition)
        if condition is None:
            logger.debug("Skipping achievement %d with unparseable condition", achievement.id)
            continue
        if not condition.is_satisfied(stats):
            continue
        record = await unlock_achievement(db, user_id, achievement, now)
        if record is not None:
            unlocked.append(record)

    return unlocked


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


async def list_achievements(db: AsyncSession) -> list[tuple[Achievement, int]]:
    """All achievements with their unlock counts, cheapest first."""
    unlock_count = (
        select(UserAchievement.achievement_id, func.count(UserAchievement.id).label("unlocks"))
        .group_by(UserAchievement.achievement_id)
        .subquery()
    )
    result = await db.execute(
        select(Achievement, func.coalesce(unlock_count.c.unlocks, 0))
        .outerjoin(unlock_count, unlock_count.c.achievement_id == Achievement.id)
        .order_by(Achievement.xp_reward.asc(), Achievement.id.asc())
    )
    return [(row[0], int(row[1])) for row in result.all()]


async def get_achievement(db: AsyncSession, achievement_id: int) -> tuple[Achievement, int]:
    achievement = await db.get(Achievement, achievement_id)
    if achievement is None:
        msg = "Achievement not found"
        raise NotFoundError(msg)
    count = await db.execute(
        select(func.count(UserAchievement.id)).where(UserAchievement.achievement_id == achievement_id)
    )
    return achievement, int(count.scalar_one())


async def create_achievement(
    db: AsyncSession,
    *,
    name: str,
    description: str,
    xp_reward: int,
    condition: dict[str, Any],
    icon: str | None = None,
) -> Achievement:
    """Create a catalog entry. Names are unique."""
    existing = await db.execute(select(Achievement.id).where(Achievement.name == name))
    if existing.scalar_one_or_none() is not None:
        msg = "Achievement with this name already exists"
        raise ConflictError(msg)

    achievement = Achievement(
        name=name,
        description=description,
        icon=icon,
        xp_reward=xp_reward,
        condition=condition,
    )
    db.add(achievement)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        msg = "Achievement with this name already exists"
        raise ConflictError(msg) from None
    await db.commit()
    return achievement


async def _require_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        msg = "User not found"
        raise NotFoundError(msg)
    return user


async def user_achievements(db: AsyncSession, user_id: int) -> list[UserAchievement]:
    """A user's unlocks, most recent first."""
    await _require_user(db, user_id)
    result = await db.execute(
        select(UserAchievement)
        .options(selectinload(UserAchievement.achievement))
        .where(UserAchievement.user_id == user_id)
        .order_by(UserAchievement.unlocked_at.desc(), UserAchievement.id.desc())
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


async def achievement_overview(db: AsyncSession) -> dict:
    """Catalog-wide unlock statistics."""
    total_achievements = (await db.execute(select(func.count(Achievement.id)))).scalar_one()
    total_unlocked = (await db.execute(select(func.count(UserAchievement.id)))).scalar_one()
    unique_users = (
        await db.execute(select(func.count(func.distinct(UserAchievement.user_id))))
    ).scalar_one()

    unlocks = func.count(UserAchievement.id).label("unlocks")
    popular = await db.execute(
        select(Achievement, unlocks)
        .join(UserAchievement, UserAchievement.achievement_id == Achievement.id)
        .group_by(Achievement.id)
        .order_by(unlocks.desc(), Achievement.id.asc())
        .limit(10)
    )

    return {
        "total_achievements": total_achievements,
        "total_unlocked": total_unlocked,
        "unique_users": unique_users,
        "average_unlocks_per_user": total_unlocked / max(unique_users, 1),
        "popular": [(row[0], int(row[1])) for row in popular.all()],
    }


async def achievement_progress(db: AsyncSession, user_id: int) -> dict:
    """Unlock status of every achievement for one user."""
    await _require_user(db, user_id)
    result = await db.execute(select(Achievement).order_by(Achievement.id))
    achievements = list(result.scalars().all())
    unlocked = await unlocked_achievement_ids(db, user_id)

    total = len(achievements)
    unlocked_count = sum(1 for a in achievements if a.id in unlocked)
    progress = round(unlocked_count / total * 100, 2) if total else 0.0
    return {
        "total_achievements": total,
        "unlocked_achievements": unlocked_count,
        "progress": progress,
        "achievements": [(a, a.id in unlocked) for a in achievements],
    }


# ---------------------------------------------------------------------------
# Real-time events
# ---------------------------------------------------------------------------


def unlock_events(user_id: int, unlocked: list[UnlockedAchievement]) -> list[events.Event]:
    """One ``achievement:unlocked`` event per unlock, in unlock order."""
    channel = events.user_channel(user_id)
    return [
        (
            channel,
            events.ACHIEVEMENT_UNLOCKED,
            {
                "achievement": {
                    "id": record.achievement.id,
                    "name": record.achievement.name,
                    "description": record.achievement.description,
                    "icon": record.achievement.icon,
                    "xpReward": record.achievement.xp_reward,
                },
                "unlockedAt": record.unlocked_at.isoformat(),
            },
        )
        for record in unlocked
    ]


def level_up_event(user_id: int, previous_level: int, new_level: int, total_xp: int) -> events.Event:
    return (
        events.user_channel(user_id),
        events.LEVEL_UP,
        {"previousLevel": previous_level, "newLevel": new_level, "totalXP": total_xp},
    )
