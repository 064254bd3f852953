"""Integration tests for /api/v1/leaderboards endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from focusarena.db.models import Friendship, StudySession, friendship_pair_key


async def _completed(db, user, *, subject: str = "Math", minutes: int = 30, xp: int = 36) -> None:
    start = datetime.now(timezone.utc) - timedelta(hours=2)
    db.add(
        StudySession(
            user_id=user.id,
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            duration=minutes,
            subject=subject,
            completed=True,
            xp_earned=xp,
        )
    )
    await db.commit()


class TestGlobal:
    @pytest.mark.asyncio
    async def test_defaults(self, client: AsyncClient, make_user):
        top = await make_user(xp=300)
        await make_user(xp=100)

        response = await client.get("/api/v1/leaderboards/global")
        assert response.status_code == 200
        data = response.json()
        assert data["period"] == "all"
        assert data["sortKey"] == "xp"
        assert data["pagination"]["limit"] == 50
        first = data["leaderboard"][0]
        assert (first["rank"], first["id"], first["xp"]) == (1, top.id, 300)
        assert "periodXP" in first
        assert "periodHours" in first

    @pytest.mark.asyncio
    async def test_week_excludes_idle(self, client: AsyncClient, db, make_user):
        active = await make_user(xp=10)
        await make_user(xp=999)
        await _completed(db, active)

        data = (await client.get("/api/v1/leaderboards/global?period=week")).json()
        assert [e["id"] for e in data["leaderboard"]] == [active.id]
        assert data["leaderboard"][0]["periodXP"] == 36


class TestScoped:
    @pytest.mark.asyncio
    async def test_university(self, client: AsyncClient, db, make_user, make_university):
        tu = await make_university()
        member = await make_user(university_id=tu.id)
        outsider = await make_user()
        await _completed(db, member)
        await _completed(db, outsider)

        data = (await client.get(f"/api/v1/leaderboards/university/{tu.id}")).json()
        assert data["university"]["name"] == "Tech University"
        assert data["period"] == "week"
        assert [e["id"] for e in data["leaderboard"]] == [member.id]

    @pytest.mark.asyncio
    async def test_university_not_found(self, client: AsyncClient):
        response = await client.get("/api/v1/leaderboards/university/999")
        assert response.status_code == 404
        assert response.json()["detail"] == "University not found"

    @pytest.mark.asyncio
    async def test_subject(self, client: AsyncClient, db, make_user):
        physicist = await make_user()
        historian = await make_user()
        await _completed(db, physicist, subject="Physics")
        await _completed(db, historian, subject="History")

        data = (await client.get("/api/v1/leaderboards/subject/physics?period=week")).json()
        assert data["subject"] == "physics"
        assert [e["id"] for e in data["leaderboard"]] == [physicist.id]

    @pytest.mark.asyncio
    async def test_subject_defaults_to_month(self, client: AsyncClient):
        data = (await client.get("/api/v1/leaderboards/subject/Math")).json()
        assert data["period"] == "month"
        assert data["leaderboard"] == []

    @pytest.mark.asyncio
    async def test_friends_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/leaderboards/friends")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_friends_none(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        data = (await client.get("/api/v1/leaderboards/friends?period=bogus", headers=auth_headers(user))).json()
        assert data["leaderboard"] == []
        assert data["message"] == "No friends found"
        assert data["period"] == "week"

    @pytest.mark.asyncio
    async def test_friends_ranked(self, client: AsyncClient, db, make_user, auth_headers):
        me = await make_user(xp=50)
        friend = await make_user(xp=500)
        await make_user(xp=900)  # not a friend
        db.add(
            Friendship(
                user_id=me.id,
                friend_id=friend.id,
                pair_key=friendship_pair_key(me.id, friend.id),
                status="accepted",
            )
        )
        await db.commit()

        data = (await client.get("/api/v1/leaderboards/friends?period=all", headers=auth_headers(me))).json()
        assert [e["id"] for e in data["leaderboard"]] == [friend.id]
