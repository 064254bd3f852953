"""Integration tests for /api/v1/campuses endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from focusarena.db.models import Campus


async def _campus(db, university, name: str = "Main Campus") -> Campus:
    campus = Campus(university_id=university.id, name=name, latitude=48.1, longitude=11.6, address="Arcisstr. 21")
    db.add(campus)
    await db.commit()
    return campus


class TestUniversities:
    @pytest.mark.asyncio
    async def test_list_with_counts(self, client: AsyncClient, db, make_university, make_user):
        tu = await make_university()
        await make_university(name="Sorbonne", country="France")
        await _campus(db, tu)
        await make_user(university_id=tu.id)

        response = await client.get("/api/v1/campuses/universities?country=Germany")
        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total"] == 1
        (only,) = data["universities"]
        assert only["name"] == "Tech University"
        assert only["userCount"] == 1
        assert only["campusCount"] == 1

    @pytest.mark.asyncio
    async def test_search(self, client: AsyncClient, make_university):
        await make_university()
        await make_university(name="Sorbonne", country="France")
        data = (await client.get("/api/v1/campuses/universities?search=sorb")).json()
        assert [u["name"] for u in data["universities"]] == ["Sorbonne"]

    @pytest.mark.asyncio
    async def test_create_requires_auth(self, client: AsyncClient):
        response = await client.post("/api/v1/campuses/universities", json={"name": "MIT", "country": "USA"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_create_and_duplicate(self, client: AsyncClient, make_user, auth_headers):
        headers = auth_headers(await make_user())
        body = {"name": "Tech University", "country": "Germany", "city": "Munich", "metadata": {"founded": 1868}}

        created = await client.post("/api/v1/campuses/universities", json=body, headers=headers)
        assert created.status_code == 201
        data = created.json()
        assert data["message"] == "University created successfully"
        assert data["university"]["metadata"] == {"founded": 1868}

        duplicate = await client.post(
            "/api/v1/campuses/universities",
            json={"name": "tech university", "country": "GERMANY"},
            headers=headers,
        )
        assert duplicate.status_code == 409
        assert duplicate.json()["detail"] == "University already exists"

    @pytest.mark.asyncio
    async def test_detail_lists_campuses(self, client: AsyncClient, db, make_university):
        tu = await make_university()
        await _campus(db, tu)
        data = (await client.get(f"/api/v1/campuses/universities/{tu.id}")).json()
        assert [c["name"] for c in data["campuses"]] == ["Main Campus"]

    @pytest.mark.asyncio
    async def test_detail_not_found(self, client: AsyncClient):
        response = await client.get("/api/v1/campuses/universities/999")
        assert response.status_code == 404
        assert response.json() == {"detail": "University not found", "error": "not_found"}


class TestCampuses:
    @pytest.mark.asyncio
    async def test_create_campus(self, client: AsyncClient, make_university, make_user, auth_headers):
        tu = await make_university()
        response = await client.post(
            "/api/v1/campuses/campuses",
            json={"name": "Garching", "universityId": tu.id, "latitude": 48.26, "longitude": 11.67},
            headers=auth_headers(await make_user()),
        )
        assert response.status_code == 201
        campus = response.json()["campus"]
        assert campus["university"]["id"] == tu.id
        assert campus["universityId"] == tu.id

    @pytest.mark.asyncio
    async def test_create_campus_unknown_university(self, client: AsyncClient, make_user, auth_headers):
        response = await client.post(
            "/api/v1/campuses/campuses",
            json={"name": "Nowhere", "universityId": 42, "latitude": 0, "longitude": 0},
            headers=auth_headers(await make_user()),
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_create_campus_bad_coordinates(self, client: AsyncClient, make_university, make_user, auth_headers):
        tu = await make_university()
        response = await client.post(
            "/api/v1/campuses/campuses",
            json={"name": "Pole", "universityId": tu.id, "latitude": 91, "longitude": 0},
            headers=auth_headers(await make_user()),
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_filtered_by_university(self, client: AsyncClient, db, make_university):
        tu = await make_university()
        other = await make_university(name="Sorbonne", country="France")
        await _campus(db, tu, "Garching")
        await _campus(db, other, "Jussieu")

        data = (await client.get(f"/api/v1/campuses/campuses?universityId={tu.id}")).json()
        assert [c["name"] for c in data["campuses"]] == ["Garching"]

    @pytest.mark.asyncio
    async def test_get_campus_not_found(self, client: AsyncClient):
        response = await client.get("/api/v1/campuses/campuses/999")
        assert response.status_code == 404
        assert response.json()["detail"] == "Campus not found"


class TestActivityAndLeaderboard:
    @pytest.mark.asyncio
    async def test_activity_shows_open_sessions(
        self, client: AsyncClient, db, make_university, make_user, auth_headers
    ):
        tu = await make_university()
        campus = await _campus(db, tu)
        student = await make_user(name="Ada", university_id=tu.id, xp=120)
        await make_user(name="Outsider")

        await client.post(
            "/api/v1/sessions/start",
            json={"duration": 25, "subject": "Math"},
            headers=auth_headers(student),
        )

        response = await client.get(f"/api/v1/campuses/campuses/{campus.id}/activity")
        assert response.status_code == 200
        data = response.json()
        assert data["campus"]["id"] == campus.id
        assert data["activeUsers"] == 1
        assert data["activeSessions"][0]["userName"] == "Ada"
        assert data["activeSessions"][0]["subject"] == "Math"
        assert data["todaySessions"] == 0
        assert [leader["name"] for leader in data["weeklyLeaderboard"]] == ["Ada"]

    @pytest.mark.asyncio
    async def test_campus_leaderboard_empty_without_sessions(self, client: AsyncClient, db, make_university, make_user):
        tu = await make_university()
        campus = await _campus(db, tu)
        await make_user(university_id=tu.id, xp=500)

        data = (await client.get(f"/api/v1/campuses/campuses/{campus.id}/leaderboard")).json()
        assert data["campus"]["id"] == campus.id
        assert data["period"] == "week"
        assert data["sortKey"] == "xp"
        assert data["leaderboard"] == []

    @pytest.mark.asyncio
    async def test_campus_leaderboard_all_time(self, client: AsyncClient, db, make_university, make_user):
        tu = await make_university()
        campus = await _campus(db, tu)
        member = await make_user(university_id=tu.id, xp=500)
        await make_user(xp=900)

        data = (await client.get(f"/api/v1/campuses/campuses/{campus.id}/leaderboard?period=all")).json()
        assert [e["id"] for e in data["leaderboard"]] == [member.id]
        assert data["leaderboard"][0]["periodXP"] == 500
