"""Atomic progression updates on the users row."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from focusarena.db.models import User
from focusarena.errors import NotFoundError
from focusarena.gamification.level import XP_PER_LEVEL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressionUpdate:
    xp: int
    level: int


async def apply_progression(
    db: AsyncSession,
    user_id: int,
    *,
    xp: int = 0,
    study_hours: float = 0.0,
    streak_increment: int = 0,
) -> ProgressionUpdate:
    """Increment XP, hours and streak and recompute the level in one UPDATE.

    The level is derived from the post-increment XP inside the same statement,
    so concurrent writers can never leave ``level`` out of step with ``xp``.
    """
    new_xp = User.xp + xp
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(
            xp=new_xp,
            level=new_xp // XP_PER_LEVEL + 1,
            total_study_hours=User.total_study_hours + study_hours,
            streak_count=User.streak_count + streak_increment,
        )
        .returning(User.xp, User.level)
        .execution_options(synchronize_session="fetch")
    )
    row = result.one_or_none()
    if row is None:
        msg = "User not found"
        raise NotFoundError(msg)
    return ProgressionUpdate(xp=row.xp, level=row.level)


async def grant_xp(db: AsyncSession, user_id: int, amount: int) -> ProgressionUpdate:
    """Award XP and recompute the level."""
    progression = await apply_progression(db, user_id, xp=amount)
    logger.debug("Granted %d XP to user %d (xp=%d level=%d)", amount, user_id, progression.xp, progression.level)
    return progression
