"""Pydantic schemas for the caller's own profile endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AnyHttpUrl, Field

from focusarena.auth.schemas import UserResponse
from focusarena.gamification.schemas import AchievementSummary, UserAchievementResponse
from focusarena.leaderboards.schemas import UniversitySummary
from focusarena.schemas import APIModel
from focusarena.sessions.schemas import BreakdownEntry

# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


class ProfileResponse(UserResponse):
    university: UniversitySummary | None = None


class UpdateProfileRequest(APIModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    university_id: int | None = None
    preferences: dict[str, Any] | None = None


class UpdateProfileResponse(APIModel):
    message: str
    user: ProfileResponse


class UpdateAvatarRequest(APIModel):
    avatar_url: AnyHttpUrl


class UpdateAvatarResponse(APIModel):
    message: str
    avatar_url: str | None = None


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


class CurrentStats(APIModel):
    total_xp: int = Field(alias="totalXP")
    level: int
    streak_count: int
    total_study_hours: float
    level_progress: float
    next_level_xp: int = Field(alias="nextLevelXP")


class PeriodStats(APIModel):
    total_duration: int
    total_xp: int = Field(alias="totalXP")
    session_count: int
    average_duration: float
    subject_breakdown: dict[str, BreakdownEntry]
    daily_breakdown: dict[str, BreakdownEntry]


class UserStatsResponse(APIModel):
    period: str
    current_stats: CurrentStats
    period_stats: PeriodStats


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


class AchievementWithStatus(AchievementSummary):
    condition: dict[str, Any]
    unlocked: bool
    unlocked_at: datetime | None = None


class UserAchievementsOverview(APIModel):
    unlocked: list[UserAchievementResponse]
    all: list[AchievementWithStatus]
