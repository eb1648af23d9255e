"""
Tests for Coach Discovery
=========================

Tests for:
- GET /api/v1/coaches
- GET /api/v1/coaches/club
- GET /api/v1/coaches/{username}
"""

import pytest
from httpx import AsyncClient

from conftest import auth


@pytest.mark.asyncio
async def test_list_coaches_sorted_by_rate(client: AsyncClient, seeded_db):
    response = await client.get("/api/v1/coaches")
    assert response.status_code == 200

    data = response.json()
    assert data["total"] == 4
    assert [c["rate"] for c in data["items"]] == [30, 45, 50, 60]


@pytest.mark.asyncio
async def test_list_coaches_descending(client: AsyncClient, seeded_db):
    response = await client.get("/api/v1/coaches", params={"sort_order": "desc"})
    assert [c["rate"] for c in response.json()["items"]] == [60, 50, 45, 30]


@pytest.mark.asyncio
async def test_filter_by_rate_range(client: AsyncClient, seeded_db):
    response = await client.get("/api/v1/coaches", params={"min_rate": 40, "max_rate": 55})
    data = response.json()
    assert data["total"] == 2
    assert {c["display_username"] for c in data["items"]} == {"coachb1", "admin"}


@pytest.mark.asyncio
async def test_filter_by_specialty_any_overlap(client: AsyncClient, seeded_db):
    response = await client.get(
        "/api/v1/coaches", params=[("specialties", "doubles"), ("specialties", "smash")]
    )
    data = response.json()
    assert {c["display_username"] for c in data["items"]} == {"coacha1", "coacha2", "coachb1"}


@pytest.mark.asyncio
async def test_filter_by_teaching_style_and_verified(client: AsyncClient, seeded_db):
    response = await client.get("/api/v1/coaches", params={"teaching_styles": "Intense"})
    assert [c["display_username"] for c in response.json()["items"]] == ["coacha2"]

    response = await client.get("/api/v1/coaches", params={"is_verified": "true"})
    assert [c["display_username"] for c in response.json()["items"]] == ["coacha1"]


@pytest.mark.asyncio
async def test_search_by_name(client: AsyncClient, seeded_db):
    response = await client.get("/api/v1/coaches", params={"search": "finn"})
    assert [c["display_username"] for c in response.json()["items"]] == ["coacha2"]


@pytest.mark.asyncio
async def test_pagination(client: AsyncClient, seeded_db):
    response = await client.get("/api/v1/coaches", params={"limit": 3, "page": 2})
    data = response.json()
    assert data["total"] == 4
    assert data["total_pages"] == 2
    assert [c["rate"] for c in data["items"]] == [60]


@pytest.mark.asyncio
async def test_invalid_sort_rejected(client: AsyncClient, seeded_db):
    response = await client.get("/api/v1/coaches", params={"sort_by": "password"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_coaches_in_my_club(client: AsyncClient, seeded_db):
    response = await client.get("/api/v1/coaches/club", headers=auth("student_b1"))
    assert response.status_code == 200
    assert [c["user_id"] for c in response.json()] == [str(seeded_db["coach_b1"])]


@pytest.mark.asyncio
async def test_coaches_in_club_without_club(client: AsyncClient, seeded_db):
    response = await client.get("/api/v1/coaches/club", headers=auth("student_none"))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_get_coach_by_username(client: AsyncClient, seeded_db):
    response = await client.get("/api/v1/coaches/coacha1")
    assert response.status_code == 200
    data = response.json()
    assert data["user_id"] == str(seeded_db["coach_a1"])
    assert data["first_name"] == "Eve"
    assert data["club_id"] == "club-a"

    by_id = await client.get(f"/api/v1/coaches/{data['id']}")
    assert by_id.json()["user_id"] == data["user_id"]


@pytest.mark.asyncio
async def test_get_coach_not_found(client: AsyncClient, seeded_db):
    response = await client.get("/api/v1/coaches/nobody")
    assert response.status_code == 404
