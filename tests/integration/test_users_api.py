"""Integration tests for /api/v1/users endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from focusarena.gamification.seed import seed_achievements


class TestProfile:
    @pytest.mark.asyncio
    async def test_get_profile(self, client: AsyncClient, make_user, make_university, auth_headers):
        university = await make_university(city="Munich")
        user = await make_user(name="Ada", university_id=university.id)

        response = await client.get("/api/v1/users/profile", headers=auth_headers(user))
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Ada"
        assert data["university"] == {"id": university.id, "name": "Tech University", "country": "Germany", "city": "Munich"}

    @pytest.mark.asyncio
    async def test_update_profile(self, client: AsyncClient, make_user, make_university, auth_headers):
        university = await make_university()
        user = await make_user()

        response = await client.put(
            "/api/v1/users/profile",
            json={"name": "Grace", "universityId": university.id, "preferences": {"theme": "dark"}},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Profile updated successfully"
        assert data["user"]["name"] == "Grace"
        assert data["user"]["universityId"] == university.id
        assert data["user"]["preferences"] == {"theme": "dark"}

    @pytest.mark.asyncio
    async def test_update_profile_unknown_university(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.put("/api/v1/users/profile", json={"universityId": 999}, headers=auth_headers(user))
        assert response.status_code == 404
        assert response.json()["detail"] == "University not found"

    @pytest.mark.asyncio
    async def test_update_profile_name_too_short(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.put("/api/v1/users/profile", json={"name": "A"}, headers=auth_headers(user))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_update_avatar(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.put(
            "/api/v1/users/avatar",
            json={"avatarUrl": "https://cdn.example.com/a.png"},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        assert response.json()["avatarUrl"] == "https://cdn.example.com/a.png"

        bad = await client.put("/api/v1/users/avatar", json={"avatarUrl": "not a url"}, headers=auth_headers(user))
        assert bad.status_code == 422


class TestStats:
    @pytest.mark.asyncio
    async def test_stats_shape(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user(xp=150, level=2, streak_count=3)
        response = await client.get("/api/v1/users/stats?period=month", headers=auth_headers(user))
        assert response.status_code == 200
        data = response.json()
        assert data["period"] == "month"
        current = data["currentStats"]
        assert current["totalXP"] == 150
        assert current["level"] == 2
        assert current["streakCount"] == 3
        assert current["nextLevelXP"] == 50
        assert current["levelProgress"] == pytest.approx(50.0)
        assert data["periodStats"]["sessionCount"] == 0

    @pytest.mark.asyncio
    async def test_unknown_period_defaults_to_week(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.get("/api/v1/users/stats?period=year", headers=auth_headers(user))
        assert response.json()["period"] == "week"


class TestAchievementsAndFriends:
    @pytest.mark.asyncio
    async def test_achievement_overview(self, client: AsyncClient, db, make_user, auth_headers):
        await seed_achievements(db)
        user = await make_user()
        response = await client.get("/api/v1/users/achievements", headers=auth_headers(user))
        assert response.status_code == 200
        data = response.json()
        assert data["unlocked"] == []
        assert len(data["all"]) == 10
        assert all(a["unlocked"] is False for a in data["all"])

    @pytest.mark.asyncio
    async def test_friends_empty(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.get("/api/v1/users/friends", headers=auth_headers(user))
        assert response.json() == {"friends": []}
