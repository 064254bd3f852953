"""Integration tests for /api/v1/sessions endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient


class TestStartEndpoint:
    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.post("/api/v1/sessions/start", json={"duration": 25})
        assert response.status_code == 401
        assert response.json()["detail"] == "Access token required"

    @pytest.mark.asyncio
    async def test_start(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.post(
            "/api/v1/sessions/start",
            json={"duration": 25, "subject": "Math", "task": "Chapter 3"},
            headers=auth_headers(user),
        )
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Study session started"
        assert data["session"]["duration"] == 25
        assert data["session"]["subject"] == "Math"
        assert "startTime" in data["session"]

    @pytest.mark.asyncio
    async def test_second_start_is_400(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user)
        await client.post("/api/v1/sessions/start", json={"duration": 25}, headers=headers)

        response = await client.post("/api/v1/sessions/start", json={"duration": 25}, headers=headers)
        assert response.status_code == 400
        assert response.json() == {"detail": "User already has an active session", "error": "active_session_exists"}

    @pytest.mark.asyncio
    async def test_duration_out_of_range(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.post("/api/v1/sessions/start", json={"duration": 600}, headers=auth_headers(user))
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_missing_duration_is_422(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.post("/api/v1/sessions/start", json={"subject": "Math"}, headers=auth_headers(user))
        assert response.status_code == 422


class TestCompleteEndpoint:
    @pytest.mark.asyncio
    async def test_complete_on_time(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user)
        started = (await client.post("/api/v1/sessions/start", json={"duration": 25}, headers=headers)).json()
        start_time = datetime.fromisoformat(started["session"]["startTime"])

        response = await client.put(
            "/api/v1/sessions/complete",
            json={
                "sessionId": started["session"]["id"],
                "endTime": (start_time + timedelta(minutes=25)).isoformat(),
            },
            headers=headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["xpEarned"] == 37
        assert data["totalXP"] == 37
        assert data["levelUp"] is False
        assert data["newLevel"] == 1
        assert data["session"]["completed"] is True
        assert data["unlockedAchievements"] == []

    @pytest.mark.asyncio
    async def test_complete_unknown_session(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.put(
            "/api/v1/sessions/complete", json={"sessionId": 12345}, headers=auth_headers(user)
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Session not found or already completed"

    @pytest.mark.asyncio
    async def test_abandon(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user)
        started = (await client.post("/api/v1/sessions/start", json={"duration": 25}, headers=headers)).json()

        response = await client.put(
            "/api/v1/sessions/complete",
            json={"sessionId": started["session"]["id"], "completed": False},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["xpEarned"] == 0
        assert response.json()["session"]["completed"] is False


class TestQueryEndpoints:
    @pytest.mark.asyncio
    async def test_active_none(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.get("/api/v1/sessions/active", headers=auth_headers(user))
        assert response.status_code == 200
        assert response.json() == {"activeSession": None}

    @pytest.mark.asyncio
    async def test_active_running(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user)
        await client.post("/api/v1/sessions/start", json={"duration": 45}, headers=headers)

        active = (await client.get("/api/v1/sessions/active", headers=headers)).json()["activeSession"]
        assert active["duration"] == 45
        assert active["elapsed"] == 0
        assert active["remaining"] == 45

    @pytest.mark.asyncio
    async def test_history_and_analytics(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        headers = auth_headers(user)
        started = (
            await client.post("/api/v1/sessions/start", json={"duration": 25, "subject": "Math"}, headers=headers)
        ).json()
        start_time = datetime.fromisoformat(started["session"]["startTime"])
        await client.put(
            "/api/v1/sessions/complete",
            json={"sessionId": started["session"]["id"], "endTime": (start_time + timedelta(minutes=25)).isoformat()},
            headers=headers,
        )

        history = (await client.get("/api/v1/sessions/history", headers=headers)).json()
        assert history["pagination"] == {"page": 1, "limit": 20, "total": 1, "pages": 1}
        assert history["sessions"][0]["xpEarned"] == 37

        analytics = (await client.get("/api/v1/sessions/analytics?period=week", headers=headers)).json()
        assert analytics["period"] == "week"
        assert analytics["sessionCount"] == 1
        assert analytics["totalXP"] == 37
        assert analytics["subjectBreakdown"]["Math"] == {"duration": 25, "sessions": 1, "xp": 37}
