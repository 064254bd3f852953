"""Default achievement catalog, seeded idempotently at startup."""

from __future__ import annotations

import logging

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from focusarena.db.models import Achievement

logger = logging.getLogger(__name__)

ACHIEVEMENT_SEED_DATA: list[dict] = [
    # Getting started
    {
        "name": "First Focus",
        "description": "Complete your very first study session",
        "icon": "🎯",
        "xp_reward": 10,
        "condition": {"type": "total_sessions", "value": 1},
    },
    {
        "name": "Focus Champion",
        "description": "Complete 100 focus sessions",
        "icon": "🏆",
        "xp_reward": 200,
        "condition": {"type": "total_sessions", "value": 100},
    },
    # Study time
    {
        "name": "Deep Diver",
        "description": "Accumulate 10 hours of study time",
        "icon": "🤿",
        "xp_reward": 50,
        "condition": {"type": "total_study_hours", "value": 10},
    },
    {
        "name": "Centurion",
        "description": "Accumulate 100 hours of study time",
        "icon": "💯",
        "xp_reward": 300,
        "condition": {"type": "total_study_hours", "value": 100},
    },
    {
        "name": "Marathoner",
        "description": "Study for 4 hours in a single day",
        "icon": "🏃",
        "xp_reward": 75,
        "condition": {"type": "daily_study_hours", "value": 4, "timeframe": "today"},
    },
    {
        "name": "Weekly Grinder",
        "description": "Study for 20 hours within a week",
        "icon": "📚",
        "xp_reward": 150,
        "condition": {"type": "daily_study_hours", "value": 20, "timeframe": "week"},
    },
    # Streaks
    {
        "name": "Getting Warm",
        "description": "Build a streak of 7 completed sessions",
        "icon": "🔥",
        "xp_reward": 40,
        "condition": {"type": "streak_days", "value": 7},
    },
    {
        "name": "Streak Master",
        "description": "Build a streak of 30 completed sessions",
        "icon": "☄️",
        "xp_reward": 250,
        "condition": {"type": "streak_days", "value": 30},
    },
    # Progression
    {
        "name": "Rising Star",
        "description": "Earn 1,000 XP in total",
        "icon": "⭐",
        "xp_reward": 50,
        "condition": {"type": "xp_milestone", "value": 1000},
    },
    {
        "name": "Scholar",
        "description": "Reach level 10 by completing focus sessions",
        "icon": "🎓",
        "xp_reward": 100,
        "condition": {"type": "level_milestone", "value": 10},
    },
]


async def seed_achievements(db: AsyncSession) -> int:
    """Upsert the default achievements by name. Returns number of entries seeded."""
    insert = pg_insert if db.bind.dialect.name == "postgresql" else sqlite_insert
    seeded = 0
    for achievement_data in ACHIEVEMENT_SEED_DATA:
        stmt = insert(Achievement).values(**achievement_data)
        stmt = stmt.on_conflict_do_update(
            index_elements=["name"],
            set_={
                "description": stmt.excluded.description,
                "icon": stmt.excluded.icon,
                "xp_reward": stmt.excluded.xp_reward,
                "condition": stmt.excluded.condition,
            },
        )
        await db.execute(stmt)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d achievement definitions", seeded)
    return seeded
