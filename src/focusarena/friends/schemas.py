"""Pydantic schemas for friend endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import EmailStr

from focusarena.db.models import Friendship
from focusarena.leaderboards.schemas import UniversitySummary
from focusarena.schemas import APIModel


class FriendUser(APIModel):
    id: int
    name: str | None = None
    avatar_url: str | None = None
    xp: int
    level: int
    university: UniversitySummary | None = None


class Friend(FriendUser):
    streak_count: int
    total_study_hours: float
    friendship_id: int
    friendship_created_at: datetime

    @classmethod
    def from_friendship(cls, friendship: Friendship, user_id: int) -> Friend:
        """The other party of an accepted friendship, seen from ``user_id``."""
        other = friendship.friend if friendship.user_id == user_id else friendship.user
        return cls(
            **FriendUser.model_validate(other).model_dump(),
            streak_count=other.streak_count,
            total_study_hours=other.total_study_hours,
            friendship_id=friendship.id,
            friendship_created_at=friendship.created_at,
        )


class FriendsResponse(APIModel):
    friends: list[Friend]


class FriendRequest(APIModel):
    id: int
    status: str
    created_at: datetime
    user: FriendUser


class PendingRequestsResponse(APIModel):
    pending_requests: list[FriendRequest]


class SentRequestsResponse(APIModel):
    sent_requests: list[FriendRequest]


class AddFriendRequest(APIModel):
    friend_email: EmailStr


class FriendshipResponse(APIModel):
    id: int
    user_id: int
    friend_id: int
    status: str
    created_at: datetime
    updated_at: datetime


class FriendshipMessageResponse(APIModel):
    message: str
    friendship: FriendshipResponse


class SearchResult(FriendUser):
    email: str
    friendship_status: str


class SearchResponse(APIModel):
    users: list[SearchResult]
