"""Friendship state machine.

One row per unordered user pair (``pair_key``). A row is created ``pending``
by the requester, becomes ``accepted`` when the recipient accepts, is deleted
on reject or remove, and becomes ``blocked`` when either side blocks.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from focusarena.auth.service import get_user_by_email
from focusarena.db.models import Friendship, User, friendship_pair_key
from focusarena.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError

logger = structlog.get_logger()

PENDING = "pending"
ACCEPTED = "accepted"
BLOCKED = "blocked"

MIN_SEARCH_LENGTH = 2

_with_users = (
    selectinload(Friendship.user).selectinload(User.university),
    selectinload(Friendship.friend).selectinload(User.university),
)


async def get_pair(db: AsyncSession, user_a: int, user_b: int) -> Friendship | None:
    result = await db.execute(select(Friendship).where(Friendship.pair_key == friendship_pair_key(user_a, user_b)))
    return result.scalar_one_or_none()


# ── Views ──


async def list_friends(db: AsyncSession, user_id: int) -> list[Friendship]:
    """Accepted friendships in either direction."""
    result = await db.execute(
        select(Friendship)
        .where(
            Friendship.status == ACCEPTED,
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
        )
        .options(*_with_users)
        .order_by(Friendship.created_at.desc(), Friendship.id.desc())
    )
    return list(result.scalars().all())


async def pending_requests(db: AsyncSession, user_id: int) -> list[Friendship]:
    """Requests waiting for ``user_id`` to answer."""
    result = await db.execute(
        select(Friendship)
        .where(Friendship.friend_id == user_id, Friendship.status == PENDING)
        .options(*_with_users)
        .order_by(Friendship.created_at.desc(), Friendship.id.desc())
    )
    return list(result.scalars().all())


async def sent_requests(db: AsyncSession, user_id: int) -> list[Friendship]:
    """Requests ``user_id`` sent that are still pending."""
    result = await db.execute(
        select(Friendship)
        .where(Friendship.user_id == user_id, Friendship.status == PENDING)
        .options(*_with_users)
        .order_by(Friendship.created_at.desc(), Friendship.id.desc())
    )
    return list(result.scalars().all())


async def search_users(db: AsyncSession, user: User, query: str, limit: int = 10) -> list[tuple[User, str]]:
    """Users whose name or email contains ``query``, with the caller's friendship status."""
    query = query.strip()
    if len(query) < MIN_SEARCH_LENGTH:
        msg = f"Search query must be at least {MIN_SEARCH_LENGTH} characters"
        raise ValidationError(msg)

    pattern = f"%{query.lower()}%"
    result = await db.execute(
        select(User)
        .where(
            User.id != user.id,
            User.is_active.is_(True),
            or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)),
        )
        .options(selectinload(User.university))
        .order_by(User.id.asc())
        .limit(limit)
    )
    users = list(result.scalars().all())
    if not users:
        return []

    keys = {friendship_pair_key(user.id, u.id): u.id for u in users}
    rows = await db.execute(select(Friendship.pair_key, Friendship.status).where(Friendship.pair_key.in_(keys)))
    statuses = {keys[pair_key]: status for pair_key, status in rows.all()}
    return [(u, statuses.get(u.id, "none")) for u in users]


# ── Transitions ──


async def send_request(db: AsyncSession, user: User, friend_email: str) -> Friendship:
    """Create a pending request from ``user`` to the owner of ``friend_email``."""
    if friend_email.strip().lower() == user.email.lower():
        msg = "Cannot add yourself as a friend"
        raise ValidationError(msg)

    friend = await get_user_by_email(db, friend_email)
    if friend is None or not friend.is_active:
        msg = "User not found"
        raise NotFoundError(msg)

    existing = await get_pair(db, user.id, friend.id)
    if existing is not None:
        _raise_for_existing(existing, user.id)

    friendship = Friendship(
        user_id=user.id,
        friend_id=friend.id,
        pair_key=friendship_pair_key(user.id, friend.id),
        status=PENDING,
    )
    db.add(friendship)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        msg = "Friendship already exists"
        raise ConflictError(msg) from None

    logger.info("friend_request_sent", user_id=user.id, friend_id=friend.id, friendship_id=friendship.id)
    return await _reload(db, friendship.id)


def _raise_for_existing(existing: Friendship, user_id: int) -> None:
    if existing.status == ACCEPTED:
        msg = "Already friends with this user"
        raise ConflictError(msg)
    if existing.status == BLOCKED:
        msg = "Cannot add blocked user"
        raise PermissionDeniedError(msg)
    if existing.user_id == user_id:
        msg = "Friend request already sent"
        raise ConflictError(msg)
    msg = "Friend request already received"
    raise ConflictError(msg)


async def _pending_for_recipient(db: AsyncSession, friendship_id: int, user_id: int) -> Friendship:
    result = await db.execute(
        select(Friendship)
        .where(
            Friendship.id == friendship_id,
            Friendship.friend_id == user_id,
            Friendship.status == PENDING,
        )
        .options(*_with_users)
    )
    friendship = result.scalar_one_or_none()
    if friendship is None:
        msg = "Friend request not found"
        raise NotFoundError(msg)
    return friendship


async def accept_request(db: AsyncSession, friendship_id: int, user_id: int) -> Friendship:
    """Recipient accepts a pending request."""
    friendship = await _pending_for_recipient(db, friendship_id, user_id)
    friendship.status = ACCEPTED
    await db.commit()
    logger.info("friend_request_accepted", user_id=user_id, friendship_id=friendship_id)
    return await _reload(db, friendship_id)


async def reject_request(db: AsyncSession, friendship_id: int, user_id: int) -> Friendship:
    """Recipient rejects a pending request; the row is deleted and returned detached."""
    friendship = await _pending_for_recipient(db, friendship_id, user_id)
    await db.delete(friendship)
    await db.commit()
    logger.info("friend_request_rejected", user_id=user_id, friendship_id=friendship_id)
    return friendship


async def remove_friend(db: AsyncSession, friendship_id: int, user_id: int) -> Friendship:
    """Either side ends an accepted friendship."""
    result = await db.execute(
        select(Friendship)
        .where(
            Friendship.id == friendship_id,
            Friendship.status == ACCEPTED,
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
        )
        .options(*_with_users)
    )
    friendship = result.scalar_one_or_none()
    if friendship is None:
        msg = "Friendship not found"
        raise NotFoundError(msg)
    await db.delete(friendship)
    await db.commit()
    logger.info("friend_removed", user_id=user_id, friendship_id=friendship_id)
    return friendship


async def block(db: AsyncSession, friendship_id: int, user_id: int) -> Friendship:
    """Either side blocks, whatever the current status."""
    result = await db.execute(
        select(Friendship).where(
            Friendship.id == friendship_id,
            or_(Friendship.user_id == user_id, Friendship.friend_id == user_id),
        )
    )
    friendship = result.scalar_one_or_none()
    if friendship is None:
        msg = "Friendship not found"
        raise NotFoundError(msg)
    friendship.status = BLOCKED
    await db.commit()
    logger.info("friend_blocked", user_id=user_id, friendship_id=friendship_id)
    return await _reload(db, friendship_id)


async def _reload(db: AsyncSession, friendship_id: int) -> Friendship:
    result = await db.execute(
        select(Friendship)
        .where(Friendship.id == friendship_id)
        .options(*_with_users)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


def user_card(user: User) -> dict[str, Any]:
    """Sender/recipient summary carried by friend events."""
    return {"id": user.id, "name": user.name, "avatarUrl": user.avatar_url}
