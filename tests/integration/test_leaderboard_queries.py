"""Leaderboard ranking over real rows with a pinned clock."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from focusarena.db.models import Friendship, StudySession, User, friendship_pair_key
from focusarena.leaderboards.service import accepted_friend_ids, build_leaderboard

NOW = datetime(2026, 3, 18, 12, 0, tzinfo=timezone.utc)


async def _study(db, user, *, minutes=30, xp=36, ago=timedelta(hours=1), subject="Math", completed=True) -> None:
    start = NOW - ago
    db.add(
        StudySession(
            user_id=user.id,
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            duration=minutes,
            subject=subject,
            completed=completed,
            xp_earned=xp if completed else 0,
        )
    )
    await db.commit()


class TestOrdering:
    @pytest.mark.asyncio
    async def test_all_time_lists_everyone_by_xp(self, db, make_user) -> None:
        low = await make_user(xp=50)
        high = await make_user(xp=500)
        tie_a = await make_user(xp=200)
        tie_b = await make_user(xp=200)

        board = await build_leaderboard(db, period="all", now=NOW)

        assert [e["id"] for e in board.entries] == [high.id, tie_a.id, tie_b.id, low.id]
        assert [e["rank"] for e in board.entries] == [1, 2, 3, 4]
        assert board.entries[0]["period_xp"] == 500
        assert board.pagination.total == 4

    @pytest.mark.asyncio
    async def test_inactive_users_hidden(self, db, make_user) -> None:
        await make_user(xp=999, is_active=False)
        visible = await make_user(xp=1)
        board = await build_leaderboard(db, period="all", now=NOW)
        assert [e["id"] for e in board.entries] == [visible.id]

    @pytest.mark.asyncio
    async def test_window_drops_idle_users_but_orders_by_lifetime_xp(self, db, make_user) -> None:
        veteran = await make_user(xp=1000)
        newcomer = await make_user(xp=100)
        await make_user(xp=5000)  # no sessions this week

        await _study(db, veteran, minutes=30, xp=36)
        await _study(db, newcomer, minutes=120, xp=180)
        await _study(db, newcomer, minutes=60, xp=90, ago=timedelta(days=2))

        board = await build_leaderboard(db, period="week", now=NOW)

        assert board.period == "week"
        assert [e["id"] for e in board.entries] == [veteran.id, newcomer.id]
        newcomer_entry = board.entries[1]
        assert newcomer_entry["period_xp"] == 270
        assert newcomer_entry["period_hours"] == pytest.approx(3.0)

    @pytest.mark.asyncio
    async def test_window_ignores_old_and_abandoned_sessions(self, db, make_user) -> None:
        user = await make_user(xp=10)
        await _study(db, user, ago=timedelta(days=10))
        await _study(db, user, completed=False)

        board = await build_leaderboard(db, period="week", now=NOW)
        assert board.entries == []
        assert board.pagination.total == 0

    @pytest.mark.asyncio
    async def test_unknown_period_falls_back_to_week(self, db, make_user) -> None:
        board = await build_leaderboard(db, period="fortnight", now=NOW)
        assert board.period == "week"

    @pytest.mark.asyncio
    async def test_ranks_continue_across_pages(self, db, make_user) -> None:
        for xp in (50, 40, 30, 20, 10):
            await make_user(xp=xp)
        board = await build_leaderboard(db, period="all", page=2, limit=2, now=NOW)
        assert [e["rank"] for e in board.entries] == [3, 4]
        assert [e["xp"] for e in board.entries] == [30, 20]
        assert board.pagination.pages == 3


class TestScopes:
    @pytest.mark.asyncio
    async def test_university_filter(self, db, make_user, make_university) -> None:
        tu = await make_university()
        member = await make_user(xp=10, university_id=tu.id)
        await make_user(xp=20)
        await _study(db, member)

        board = await build_leaderboard(db, period="week", user_filters=(User.university_id == tu.id,), now=NOW)
        assert [e["id"] for e in board.entries] == [member.id]
        assert board.entries[0]["university"]["name"] == "Tech University"

    @pytest.mark.asyncio
    async def test_subject_is_case_insensitive(self, db, make_user) -> None:
        mathy = await make_user(xp=10)
        other = await make_user(xp=20)
        await _study(db, mathy, subject="Mathematics")
        await _study(db, other, subject="History")

        board = await build_leaderboard(db, period="month", subject="mathematics", now=NOW)
        assert [e["id"] for e in board.entries] == [mathy.id]

    @pytest.mark.asyncio
    async def test_friend_ids_in_both_directions(self, db, make_user) -> None:
        me = await make_user()
        asked = await make_user()
        asker = await make_user()
        pending = await make_user()
        for owner, friend, status in ((me, asked, "accepted"), (asker, me, "accepted"), (me, pending, "pending")):
            db.add(
                Friendship(
                    user_id=owner.id,
                    friend_id=friend.id,
                    pair_key=friendship_pair_key(owner.id, friend.id),
                    status=status,
                )
            )
        await db.commit()

        assert sorted(await accepted_friend_ids(db, me.id)) == sorted([asked.id, asker.id])
