"""University and campus directory plus live campus activity."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from focusarena.cache import CacheClient, campus_activity_key
from focusarena.db.models import Campus, StudySession, University, User
from focusarena.errors import ConflictError, NotFoundError
from focusarena.gamification.engine import elapsed_minutes
from focusarena.pagination import Pagination, count_rows, offset_for, page_info
from focusarena.periods import today_start

logger = structlog.get_logger()

WEEKLY_TOP = 10


# ---------------------------------------------------------------------------
# Universities
# ---------------------------------------------------------------------------


def _member_count():
    return (
        select(func.count(User.id))
        .where(User.university_id == University.id)
        .correlate(University)
        .scalar_subquery()
        .label("user_count")
    )


def _campus_count():
    return (
        select(func.count(Campus.id))
        .where(Campus.university_id == University.id)
        .correlate(University)
        .scalar_subquery()
        .label("campus_count")
    )


async def list_universities(
    db: AsyncSession,
    *,
    country: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[tuple[University, int, int]], Pagination]:
    """Universities by name with member and campus counts."""
    query = select(University)
    if country:
        query = query.where(University.country == country)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(or_(func.lower(University.name).like(pattern), func.lower(University.city).like(pattern)))

    total = await count_rows(db, query)
    result = await db.execute(
        query.add_columns(_member_count(), _campus_count())
        .order_by(University.name.asc(), University.id.asc())
        .offset(offset_for(page, limit))
        .limit(limit)
    )
    rows = [(u, int(users), int(campuses)) for u, users, campuses in result.all()]
    return rows, page_info(page, limit, total)


async def get_university(db: AsyncSession, university_id: int) -> tuple[University, int, int]:
    """University with its campuses loaded, plus member and campus counts."""
    result = await db.execute(
        select(University, _member_count(), _campus_count())
        .where(University.id == university_id)
        .options(selectinload(University.campuses))
    )
    row = result.one_or_none()
    if row is None:
        msg = "University not found"
        raise NotFoundError(msg)
    university, users, campuses = row
    return university, int(users), int(campuses)


async def create_university(db: AsyncSession, data: dict[str, Any]) -> University:
    """Add a university. 409 when the name already exists in that country (case-insensitive)."""
    existing = await db.execute(
        select(University.id).where(
            func.lower(University.name) == data["name"].lower(),
            func.lower(University.country) == data["country"].lower(),
        )
    )
    if existing.first() is not None:
        msg = "University already exists"
        raise ConflictError(msg)

    university = University(
        name=data["name"],
        country=data["country"],
        city=data.get("city"),
        latitude=data.get("latitude"),
        longitude=data.get("longitude"),
        university_metadata=data.get("metadata"),
    )
    db.add(university)
    await db.commit()
    logger.info("university_created", university_id=university.id, name=university.name)
    return university


# ---------------------------------------------------------------------------
# Campuses
# ---------------------------------------------------------------------------


async def list_campuses(
    db: AsyncSession,
    *,
    university_id: int | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Campus], Pagination]:
    query = select(Campus)
    if university_id is not None:
        query = query.where(Campus.university_id == university_id)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(or_(func.lower(Campus.name).like(pattern), func.lower(Campus.address).like(pattern)))

    total = await count_rows(db, query)
    result = await db.execute(
        query.options(selectinload(Campus.university))
        .order_by(Campus.name.asc(), Campus.id.asc())
        .offset(offset_for(page, limit))
        .limit(limit)
    )
    return list(result.scalars().all()), page_info(page, limit, total)


async def get_campus(db: AsyncSession, campus_id: int) -> Campus:
    result = await db.execute(
        select(Campus).where(Campus.id == campus_id).options(selectinload(Campus.university))
    )
    campus = result.scalar_one_or_none()
    if campus is None:
        msg = "Campus not found"
        raise NotFoundError(msg)
    return campus


async def create_campus(db: AsyncSession, data: dict[str, Any]) -> Campus:
    if await db.get(University, data["university_id"]) is None:
        msg = "University not found"
        raise NotFoundError(msg)

    campus = Campus(
        university_id=data["university_id"],
        name=data["name"],
        latitude=data["latitude"],
        longitude=data["longitude"],
        address=data.get("address"),
        campus_metadata=data.get("metadata"),
    )
    db.add(campus)
    await db.commit()
    logger.info("campus_created", campus_id=campus.id, university_id=campus.university_id)
    return await get_campus(db, campus.id)


# ---------------------------------------------------------------------------
# Live activity
# ---------------------------------------------------------------------------


async def university_activity(
    db: AsyncSession,
    cache: CacheClient,
    university_id: int,
    *,
    ttl: int,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Open sessions, today's totals and the weekly top ten for one university.

    Cached briefly under ``campus:activity:{university_id}`` and dropped when a
    member completes a session.
    """
    key = campus_activity_key(university_id)
    cached = await cache.get_json(key)
    if cached is not None:
        return cached

    now = now or datetime.now(timezone.utc)

    open_rows = await db.execute(
        select(StudySession, User.name, User.avatar_url)
        .join(User, User.id == StudySession.user_id)
        .where(
            User.university_id == university_id,
            StudySession.start_time <= now,
            StudySession.end_time.is_(None),
            StudySession.completed.is_(False),
        )
        .order_by(StudySession.start_time.asc())
    )
    active_sessions = [
        {
            "user_id": session.user_id,
            "user_name": name,
            "user_avatar": avatar,
            "subject": session.subject,
            "task": session.task,
            "elapsed": elapsed_minutes(session.start_time, now),
        }
        for session, name, avatar in open_rows.all()
    ]

    minutes_today, sessions_today = (
        await db.execute(
            select(func.coalesce(func.sum(StudySession.duration), 0), func.count(StudySession.id))
            .join(User, User.id == StudySession.user_id)
            .where(
                User.university_id == university_id,
                StudySession.start_time >= today_start(now),
                StudySession.completed.is_(True),
            )
        )
    ).one()

    week_ago = now - timedelta(days=7)
    weekly_sessions = (
        select(func.count(StudySession.id))
        .where(
            StudySession.user_id == User.id,
            StudySession.start_time >= week_ago,
            StudySession.completed.is_(True),
        )
        .correlate(User)
        .scalar_subquery()
    )
    top = await db.execute(
        select(User.id, User.name, User.avatar_url, User.xp, User.level, weekly_sessions)
        .where(User.university_id == university_id, User.is_active.is_(True))
        .order_by(User.xp.desc(), User.id.asc())
        .limit(WEEKLY_TOP)
    )

    activity = {
        "active_users": len({s["user_id"] for s in active_sessions}),
        "today_study_hours": int(minutes_today) / 60,
        "today_sessions": int(sessions_today),
        "weekly_leaderboard": [
            {"id": uid, "name": name, "avatar_url": avatar, "xp": xp, "level": level, "weekly_sessions": int(count)}
            for uid, name, avatar, xp, level, count in top.all()
        ],
        "active_sessions": active_sessions,
    }
    await cache.set_json(key, activity, ttl=ttl)
    return activity
