"""Study session lifecycle: start, complete and reporting.

A user is either idle or has exactly one open session (``completed = false``
and ``end_time IS NULL``). Start and complete for one user are serialized by
an in-process lock; across processes the partial unique index on open
sessions and the conditional completion UPDATE keep the invariant.
"""

from __future__ import annotations

import asyncio
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog
from fastapi import Depends, Request
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from focusarena.cache import CacheClient, campus_activity_key
from focusarena.database import get_session
from focusarena.db.models import StudySession, User
from focusarena.errors import ActiveSessionExistsError, NotFoundError, ValidationError
from focusarena.gamification.achievement_service import (
    UnlockedAchievement,
    check_achievements,
    level_up_event,
    unlock_events,
)
from focusarena.gamification.engine import elapsed_minutes, settle_session
from focusarena.gamification.xp_service import apply_progression
from focusarena.notifications import events
from focusarena.notifications.publisher import Notifier
from focusarena.pagination import Pagination, count_rows, offset_for, page_info
from focusarena.periods import normalize_period, window_start
from focusarena.sessions.analytics import summarize_sessions

logger = structlog.get_logger()

MIN_DURATION_MINUTES = 1
MAX_DURATION_MINUTES = 480
MAX_ELAPSED_MINUTES = 24 * 60


class UserLocks:
    """Per-user ``asyncio.Lock`` registry. Idle locks are garbage collected."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    def for_user(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock


@dataclass
class CompletionResult:
    session: StudySession
    xp_earned: int
    total_xp: int
    previous_level: int
    new_level: int
    unlocked: list[UnlockedAchievement] = field(default_factory=list)

    @property
    def level_up(self) -> bool:
        return self.new_level > self.previous_level


def _open_session_filter(user_id: int) -> tuple:
    return (
        StudySession.user_id == user_id,
        StudySession.completed.is_(False),
        StudySession.end_time.is_(None),
    )


class SessionService:
    """Session operations for one request."""

    def __init__(self, db: AsyncSession, cache: CacheClient, notifier: Notifier, locks: UserLocks) -> None:
        self.db = db
        self.cache = cache
        self.notifier = notifier
        self.locks = locks

    # ── Lifecycle ──

    async def start(
        self,
        user_id: int,
        duration: int,
        subject: str | None = None,
        task: str | None = None,
    ) -> StudySession:
        """Open a new session for an idle user."""
        if not MIN_DURATION_MINUTES <= duration <= MAX_DURATION_MINUTES:
            msg = f"Duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes"
            raise ValidationError(msg)

        async with self.locks.for_user(user_id):
            existing = await self.db.execute(select(StudySession.id).where(*_open_session_filter(user_id)))
            if existing.first() is not None:
                msg = "User already has an active session"
                raise ActiveSessionExistsError(msg)

            session = StudySession(
                user_id=user_id,
                start_time=datetime.now(timezone.utc),
                duration=duration,
                subject=subject,
                task=task,
                completed=False,
                xp_earned=0,
            )
            self.db.add(session)
            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                msg = "User already has an active session"
                raise ActiveSessionExistsError(msg) from None

        logger.info("session_started", user_id=user_id, session_id=session.id, duration=duration)
        await self.notifier.to_user(
            user_id,
            events.SESSION_STARTED,
            {
                "sessionId": session.id,
                "startTime": session.start_time.isoformat(),
                "duration": session.duration,
                "subject": session.subject,
                "task": session.task,
            },
        )
        return session

    async def complete(
        self,
        user_id: int,
        session_id: int,
        end_time: datetime | None = None,
        completed: bool = True,
    ) -> CompletionResult:
        """Close an open session, settle XP and run the achievement pass in one transaction."""
        not_found = "Session not found or already completed"
        now = datetime.now(timezone.utc)
        if end_time is None:
            end_time = now
        elif end_time.tzinfo is None:
            end_time = end_time.replace(tzinfo=timezone.utc)

        async with self.locks.for_user(user_id):
            result = await self.db.execute(
                select(StudySession).where(StudySession.id == session_id, *_open_session_filter(user_id))
            )
            session = result.scalar_one_or_none()
            if session is None:
                raise NotFoundError(not_found)

            user = (
                await self.db.execute(
                    select(User.xp, User.level, User.name, User.university_id).where(User.id == user_id)
                )
            ).one()

            actual = elapsed_minutes(session.start_time, end_time)
            if actual > MAX_ELAPSED_MINUTES:
                msg = f"Session cannot run longer than {MAX_ELAPSED_MINUTES} minutes"
                raise ValidationError(msg)
            settlement = settle_session(user.xp, user.level, session.duration, actual, completed)

            # Conditional close: only one writer can flip an open session
            closed = await self.db.execute(
                update(StudySession)
                .where(StudySession.id == session_id, *_open_session_filter(user_id))
                .values(
                    end_time=end_time,
                    duration=settlement.actual_duration,
                    completed=completed,
                    xp_earned=settlement.xp_earned,
                )
                .returning(StudySession.id)
                .execution_options(synchronize_session="fetch")
            )
            if len(closed.all()) != 1:
                await self.db.rollback()
                raise NotFoundError(not_found)

            progression = await apply_progression(
                self.db,
                user_id,
                xp=settlement.xp_earned,
                study_hours=settlement.actual_duration / 60,
                streak_increment=1 if completed else 0,
            )
            unlocked = await check_achievements(self.db, user_id, now)
            await self.db.commit()
            await self.db.refresh(session)

        final = unlocked[-1] if unlocked else progression
        outcome = CompletionResult(
            session=session,
            xp_earned=settlement.xp_earned,
            total_xp=final.xp,
            previous_level=user.level,
            new_level=final.level,
            unlocked=unlocked,
        )
        logger.info(
            "session_completed",
            user_id=user_id,
            session_id=session_id,
            duration=settlement.actual_duration,
            xp_earned=settlement.xp_earned,
            level_up=outcome.level_up,
            achievements=len(unlocked),
        )

        await self.cache.clear_pattern(f"user:stats:{user_id}:*")
        if user.university_id is not None:
            await self.cache.delete(campus_activity_key(user.university_id))
        await self.notifier.publish_all(self._completion_events(user_id, user.name, user.university_id, outcome))
        return outcome

    @staticmethod
    def _completion_events(
        user_id: int,
        user_name: str | None,
        university_id: int | None,
        outcome: CompletionResult,
    ) -> list[events.Event]:
        """Events of one completion, in publish order."""
        user_ch = events.user_channel(user_id)
        out: list[events.Event] = [
            (
                user_ch,
                events.SESSION_COMPLETED,
                {
                    "sessionId": outcome.session.id,
                    "xpEarned": outcome.xp_earned,
                    "totalXP": outcome.total_xp,
                    "levelUp": outcome.level_up,
                    "newLevel": outcome.new_level,
                },
            )
        ]
        if university_id is not None:
            out.append(
                (
                    events.campus_channel(university_id),
                    events.CAMPUS_ACTIVITY,
                    {
                        "userId": user_id,
                        "userName": user_name,
                        "action": "completed_session",
                        "duration": outcome.session.duration,
                        "xpEarned": outcome.xp_earned,
                    },
                )
            )
        out.extend(unlock_events(user_id, outcome.unlocked))
        if outcome.level_up:
            out.append(level_up_event(user_id, outcome.previous_level, outcome.new_level, outcome.total_xp))
        return out

    # ── Queries ──

    async def active_session(self, user_id: int, now: datetime | None = None) -> dict | None:
        """The open session with ``elapsed`` and ``remaining`` minutes, or None."""
        now = now or datetime.now(timezone.utc)
        result = await self.db.execute(select(StudySession).where(*_open_session_filter(user_id)))
        session = result.scalar_one_or_none()
        if session is None:
            return None
        elapsed = elapsed_minutes(session.start_time, now)
        return {
            "id": session.id,
            "start_time": session.start_time,
            "duration": session.duration,
            "subject": session.subject,
            "task": session.task,
            "elapsed": elapsed,
            "remaining": max(0, session.duration - elapsed),
        }

    async def history(
        self,
        user_id: int,
        *,
        subject: str | None = None,
        completed: bool | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[StudySession], Pagination]:
        """Sessions newest first."""
        query = select(StudySession).where(StudySession.user_id == user_id)
        if subject:
            query = query.where(StudySession.subject == subject)
        if completed is not None:
            query = query.where(StudySession.completed.is_(completed))

        total = await count_rows(self.db, query)
        result = await self.db.execute(
            query.order_by(StudySession.start_time.desc(), StudySession.id.desc())
            .offset(offset_for(page, limit))
            .limit(limit)
        )
        return list(result.scalars().all()), page_info(page, limit, total)

    async def analytics(self, user_id: int, period: str | None = None, now: datetime | None = None) -> dict:
        """Completed-session report over ``period`` (unknown periods fall back to ``week``)."""
        period = normalize_period(period)
        report = summarize_sessions(await completed_sessions_since(self.db, user_id, window_start(period, now)))
        report["period"] = period
        return report


async def completed_sessions_since(
    db: AsyncSession, user_id: int, start: datetime | None
) -> list[StudySession]:
    query = select(StudySession).where(StudySession.user_id == user_id, StudySession.completed.is_(True))
    if start is not None:
        query = query.where(StudySession.start_time >= start)
    result = await db.execute(query.order_by(StudySession.start_time.asc()))
    return list(result.scalars().all())


def get_session_service(request: Request, db: AsyncSession = Depends(get_session)) -> SessionService:
    """FastAPI dependency wiring the service to app-scoped resources."""
    state = request.app.state
    return SessionService(db, state.cache, state.notifier, state.session_locks)
