"""Friendship state machine against the database."""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from focusarena.db.models import Friendship
from focusarena.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from focusarena.friends import service
from focusarena.friends.schemas import Friend


@pytest_asyncio.fixture
async def pair(make_user):
    alice = await make_user(email="alice@example.com", name="Alice")
    bob = await make_user(email="bob@example.com", name="Bob")
    return alice, bob


async def _rows(db) -> int:
    return (await db.execute(select(func.count(Friendship.id)))).scalar_one()


class TestRequests:
    @pytest.mark.asyncio
    async def test_send_creates_pending_row(self, db, pair) -> None:
        alice, bob = pair
        friendship = await service.send_request(db, alice, "bob@example.com")

        assert friendship.status == service.PENDING
        assert (friendship.user_id, friendship.friend_id) == (alice.id, bob.id)
        assert friendship.friend.name == "Bob"
        assert [f.id for f in await service.sent_requests(db, alice.id)] == [friendship.id]
        assert [f.id for f in await service.pending_requests(db, bob.id)] == [friendship.id]

    @pytest.mark.asyncio
    async def test_email_lookup_is_case_insensitive(self, db, pair) -> None:
        alice, bob = pair
        friendship = await service.send_request(db, alice, "BOB@example.com")
        assert friendship.friend_id == bob.id

    @pytest.mark.asyncio
    async def test_cannot_befriend_self(self, db, pair) -> None:
        alice, _ = pair
        with pytest.raises(ValidationError):
            await service.send_request(db, alice, "alice@example.com")

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, db, pair) -> None:
        alice, _ = pair
        with pytest.raises(NotFoundError):
            await service.send_request(db, alice, "nobody@example.com")

    @pytest.mark.asyncio
    async def test_duplicate_request_in_either_direction(self, db, pair) -> None:
        alice, bob = pair
        await service.send_request(db, alice, "bob@example.com")

        with pytest.raises(ConflictError, match="already sent"):
            await service.send_request(db, alice, "bob@example.com")
        with pytest.raises(ConflictError, match="already received"):
            await service.send_request(db, bob, "alice@example.com")
        assert await _rows(db) == 1


class TestTransitions:
    @pytest.mark.asyncio
    async def test_accept_makes_friends_both_ways(self, db, pair) -> None:
        alice, bob = pair
        request = await service.send_request(db, alice, "bob@example.com")
        accepted = await service.accept_request(db, request.id, bob.id)

        assert accepted.status == service.ACCEPTED
        assert [f.id for f in await service.list_friends(db, alice.id)] == [request.id]
        assert [f.id for f in await service.list_friends(db, bob.id)] == [request.id]

        with pytest.raises(ConflictError, match="Already friends"):
            await service.send_request(db, bob, "alice@example.com")

    @pytest.mark.asyncio
    async def test_only_recipient_can_accept(self, db, pair) -> None:
        alice, _ = pair
        request = await service.send_request(db, alice, "bob@example.com")
        with pytest.raises(NotFoundError):
            await service.accept_request(db, request.id, alice.id)

    @pytest.mark.asyncio
    async def test_reject_deletes_request(self, db, pair) -> None:
        alice, bob = pair
        request = await service.send_request(db, alice, "bob@example.com")
        await service.reject_request(db, request.id, bob.id)

        assert await _rows(db) == 0
        # A fresh request is allowed afterwards
        again = await service.send_request(db, alice, "bob@example.com")
        assert again.status == service.PENDING

    @pytest.mark.asyncio
    async def test_remove_requires_accepted(self, db, pair) -> None:
        alice, bob = pair
        request = await service.send_request(db, alice, "bob@example.com")
        with pytest.raises(NotFoundError):
            await service.remove_friend(db, request.id, alice.id)

        await service.accept_request(db, request.id, bob.id)
        await service.remove_friend(db, request.id, bob.id)
        assert await service.list_friends(db, alice.id) == []

    @pytest.mark.asyncio
    async def test_block_prevents_new_requests(self, db, pair) -> None:
        alice, bob = pair
        request = await service.send_request(db, alice, "bob@example.com")
        blocked = await service.block(db, request.id, bob.id)
        assert blocked.status == service.BLOCKED

        with pytest.raises(PermissionDeniedError):
            await service.send_request(db, alice, "bob@example.com")
        assert await service.pending_requests(db, bob.id) == []

    @pytest.mark.asyncio
    async def test_outsider_cannot_block(self, db, pair, make_user) -> None:
        alice, _ = pair
        carol = await make_user(email="carol@example.com")
        request = await service.send_request(db, alice, "bob@example.com")
        with pytest.raises(NotFoundError):
            await service.block(db, request.id, carol.id)


class TestViews:
    @pytest.mark.asyncio
    async def test_friend_view_shows_other_party(self, db, pair) -> None:
        alice, bob = pair
        request = await service.send_request(db, alice, "bob@example.com")
        await service.accept_request(db, request.id, bob.id)

        (friendship,) = await service.list_friends(db, bob.id)
        friend = Friend.from_friendship(friendship, bob.id)
        assert friend.id == alice.id
        assert friend.name == "Alice"
        assert friend.friendship_id == request.id

    @pytest.mark.asyncio
    async def test_search_reports_status(self, db, pair, make_user) -> None:
        alice, _ = pair
        await make_user(email="bobby@example.com", name="Bobby")
        await service.send_request(db, alice, "bob@example.com")

        results = await service.search_users(db, alice, "bob")
        assert [(u.email, status) for u, status in results] == [
            ("bob@example.com", service.PENDING),
            ("bobby@example.com", "none"),
        ]

    @pytest.mark.asyncio
    async def test_search_excludes_caller(self, db, pair) -> None:
        alice, _ = pair
        results = await service.search_users(db, alice, "alice")
        assert results == []

    @pytest.mark.asyncio
    async def test_search_query_too_short(self, db, pair) -> None:
        alice, _ = pair
        with pytest.raises(ValidationError):
            await service.search_users(db, alice, " b ")
