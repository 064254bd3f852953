"""Pydantic schemas for leaderboard endpoints."""

from __future__ import annotations

from pydantic import Field

from focusarena.pagination import Pagination
from focusarena.schemas import APIModel


class UniversitySummary(APIModel):
    id: int
    name: str
    country: str
    city: str | None = None


class LeaderboardEntry(APIModel):
    rank: int
    id: int
    name: str | None = None
    avatar_url: str | None = None
    xp: int
    level: int
    streak_count: int
    total_study_hours: float
    university: UniversitySummary | None = None
    period_xp: int = Field(alias="periodXP")
    period_hours: float


class LeaderboardResponse(APIModel):
    period: str
    sort_key: str = "xp"
    leaderboard: list[LeaderboardEntry]
    pagination: Pagination
    message: str | None = None


class UniversityLeaderboardResponse(LeaderboardResponse):
    university: UniversitySummary


class SubjectLeaderboardResponse(LeaderboardResponse):
    subject: str


class CampusSummary(APIModel):
    id: int
    name: str
    university_id: int
    university: UniversitySummary


class CampusLeaderboardResponse(LeaderboardResponse):
    campus: CampusSummary
