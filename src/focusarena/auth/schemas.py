"""Pydantic schemas for authentication endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field

from focusarena.schemas import APIModel

# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserResponse(APIModel):
    """Full user profile returned to its owner."""

    id: int
    email: str
    name: str | None = None
    avatar_url: str | None = None
    preferences: dict[str, Any] | None = None
    xp: int
    level: int
    streak_count: int
    total_study_hours: float
    university_id: int | None = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class DevLoginRequest(APIModel):
    """Stand-in for the identity-provider callback (debug builds only)."""

    email: EmailStr
    name: str | None = Field(default=None, max_length=100)
    avatar_url: str | None = None


class RefreshRequest(APIModel):
    """Refresh token rotation request."""

    refresh_token: str


class LogoutRequest(APIModel):
    """Logout (revoke refresh token)."""

    refresh_token: str


class TokenResponse(APIModel):
    """Token response returned after successful auth."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 900
    user: UserResponse
