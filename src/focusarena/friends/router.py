"""Friend API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from focusarena.auth.dependencies import get_current_user
from focusarena.database import get_session
from focusarena.db.models import Friendship, User
from focusarena.friends import service
from focusarena.friends.schemas import (
    AddFriendRequest,
    Friend,
    FriendRequest,
    FriendsResponse,
    FriendshipMessageResponse,
    FriendshipResponse,
    FriendUser,
    PendingRequestsResponse,
    SearchResponse,
    SearchResult,
    SentRequestsResponse,
)
from focusarena.notifications import events
from focusarena.notifications.publisher import Notifier, get_notifier
from focusarena.schemas import MessageResponse

router = APIRouter(prefix="/api/v1/friends", tags=["Friends"])


def _request_entry(friendship: Friendship, user: User) -> FriendRequest:
    return FriendRequest(
        id=friendship.id,
        status=friendship.status,
        created_at=friendship.created_at,
        user=FriendUser.model_validate(user),
    )


# ── Views ──


@router.get("", response_model=FriendsResponse)
async def list_friends(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendsResponse:
    """Accepted friends in either direction."""
    friendships = await service.list_friends(db, user.id)
    return FriendsResponse(friends=[Friend.from_friendship(f, user.id) for f in friendships])


@router.get("/pending", response_model=PendingRequestsResponse)
async def pending_requests(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PendingRequestsResponse:
    """Requests waiting for the caller, with the sender."""
    friendships = await service.pending_requests(db, user.id)
    return PendingRequestsResponse(pending_requests=[_request_entry(f, f.user) for f in friendships])


@router.get("/sent", response_model=SentRequestsResponse)
async def sent_requests(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SentRequestsResponse:
    """Pending requests the caller sent, with the recipient."""
    friendships = await service.sent_requests(db, user.id)
    return SentRequestsResponse(sent_requests=[_request_entry(f, f.friend) for f in friendships])


@router.get("/search", response_model=SearchResponse)
async def search_users(
    query: str = Query(""),
    limit: int = Query(10, ge=1, le=50),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SearchResponse:
    """Find users by name or email. 400 for queries shorter than two characters."""
    rows = await service.search_users(db, user, query, limit)
    return SearchResponse(
        users=[
            SearchResult(**FriendUser.model_validate(u).model_dump(), email=u.email, friendship_status=status)
            for u, status in rows
        ]
    )


# ── Transitions ──


@router.post("/add", response_model=FriendshipMessageResponse, status_code=201)
async def add_friend(
    body: AddFriendRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
) -> FriendshipMessageResponse:
    """Send a friend request by email."""
    friendship = await service.send_request(db, user, body.friend_email)
    await notifier.to_user(
        friendship.friend_id,
        events.FRIEND_REQUEST_RECEIVED,
        {"friendshipId": friendship.id, "user": service.user_card(user)},
    )
    return FriendshipMessageResponse(
        message="Friend request sent",
        friendship=FriendshipResponse.model_validate(friendship),
    )


@router.put("/{friendship_id}/accept", response_model=FriendshipMessageResponse)
async def accept_request(
    friendship_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
) -> FriendshipMessageResponse:
    """Accept a pending request addressed to the caller."""
    friendship = await service.accept_request(db, friendship_id, user.id)
    await notifier.publish_all(
        [
            (
                events.user_channel(friendship.user_id),
                events.FRIEND_REQUEST_ACCEPTED,
                {"friendshipId": friendship.id, "user": service.user_card(user)},
            ),
            (
                events.user_channel(user.id),
                events.FRIEND_REQUEST_ACCEPTED,
                {"friendshipId": friendship.id, "user": service.user_card(friendship.user)},
            ),
        ]
    )
    return FriendshipMessageResponse(
        message="Friend request accepted",
        friendship=FriendshipResponse.model_validate(friendship),
    )


@router.put("/{friendship_id}/reject", response_model=MessageResponse)
async def reject_request(
    friendship_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
) -> MessageResponse:
    """Reject a pending request addressed to the caller. The request is deleted."""
    friendship = await service.reject_request(db, friendship_id, user.id)
    await notifier.to_user(
        friendship.user_id,
        events.FRIEND_REQUEST_REJECTED,
        {"friendshipId": friendship_id, "user": service.user_card(user)},
    )
    return MessageResponse(message="Friend request rejected")


@router.delete("/{friendship_id}", response_model=MessageResponse)
async def remove_friend(
    friendship_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
) -> MessageResponse:
    """End an accepted friendship from either side."""
    friendship = await service.remove_friend(db, friendship_id, user.id)
    other_id = friendship.friend_id if friendship.user_id == user.id else friendship.user_id
    await notifier.to_user(
        other_id,
        events.FRIEND_REMOVED,
        {"friendshipId": friendship_id, "user": service.user_card(user)},
    )
    return MessageResponse(message="Friend removed successfully")


@router.put("/{friendship_id}/block", response_model=FriendshipMessageResponse)
async def block_user(
    friendship_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendshipMessageResponse:
    """Block the other party of a friendship row."""
    friendship = await service.block(db, friendship_id, user.id)
    return FriendshipMessageResponse(
        message="User blocked successfully",
        friendship=FriendshipResponse.model_validate(friendship),
    )
