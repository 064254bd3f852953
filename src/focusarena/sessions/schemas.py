"""Pydantic schemas for study session endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from focusarena.pagination import Pagination
from focusarena.schemas import APIModel

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class StartSessionRequest(APIModel):
    subject: str | None = Field(default=None, max_length=100)
    task: str | None = Field(default=None, max_length=255)
    duration: int  # intended minutes, range-checked by the service


class CompleteSessionRequest(APIModel):
    session_id: int
    end_time: datetime | None = None
    completed: bool = True


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class StartedSession(APIModel):
    id: int
    start_time: datetime
    duration: int
    subject: str | None = None
    task: str | None = None


class StartSessionResponse(APIModel):
    message: str
    session: StartedSession


class SessionResponse(APIModel):
    id: int
    user_id: int
    start_time: datetime
    end_time: datetime | None = None
    duration: int
    subject: str | None = None
    task: str | None = None
    completed: bool
    xp_earned: int


class UnlockedAchievementResponse(APIModel):
    id: int
    name: str
    description: str
    icon: str | None = None
    xp_reward: int
    unlocked_at: datetime


class CompleteSessionResponse(APIModel):
    message: str
    session: SessionResponse
    xp_earned: int
    total_xp: int = Field(alias="totalXP")
    level_up: bool
    new_level: int
    unlocked_achievements: list[UnlockedAchievementResponse] = []


class ActiveSession(StartedSession):
    elapsed: int
    remaining: int


class ActiveSessionResponse(APIModel):
    active_session: ActiveSession | None = None


class SessionHistoryResponse(APIModel):
    sessions: list[SessionResponse]
    pagination: Pagination


class BreakdownEntry(APIModel):
    duration: int
    sessions: int
    xp: int


class SessionAnalyticsResponse(APIModel):
    period: str
    total_duration: int
    total_xp: int = Field(alias="totalXP")
    session_count: int
    average_duration: float
    subject_breakdown: dict[str, BreakdownEntry]
    daily_breakdown: dict[str, BreakdownEntry]
