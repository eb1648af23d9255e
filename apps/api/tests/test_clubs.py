"""
Tests for Club Endpoints
========================

Tests for:
- GET /api/v1/clubs
- GET /api/v1/clubs/{club_id}
- POST /api/v1/clubs
"""

import pytest
from httpx import AsyncClient

from conftest import auth


@pytest.mark.asyncio
async def test_list_clubs(client: AsyncClient, seeded_db):
    response = await client.get("/api/v1/clubs")
    assert response.status_code == 200
    assert [c["id"] for c in response.json()] == ["club-a", "club-b"]


@pytest.mark.asyncio
async def test_get_club_not_found(client: AsyncClient, seeded_db):
    """Test that non-existent club returns 404."""
    response = await client.get("/api/v1/clubs/nowhere")
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "not_found"


@pytest.mark.asyncio
async def test_get_club_detail(client: AsyncClient, seeded_db):
    """Club landing data lists its coaches and admins, not students or facilities."""
    response = await client.get("/api/v1/clubs/club-a")
    assert response.status_code == 200

    data = response.json()
    assert data["id"] == "club-a"
    assert data["name"] == "Alpha Club"
    user_ids = {c["user_id"] for c in data["coaches"]}
    assert user_ids == {
        str(seeded_db["coach_a1"]),
        str(seeded_db["coach_a2"]),
        str(seeded_db["admin"]),
    }


@pytest.mark.asyncio
async def test_admin_creates_club(client: AsyncClient, seeded_db):
    response = await client.post(
        "/api/v1/clubs", headers=auth("admin"), json={"id": "club-c", "name": "Gamma Club"}
    )
    assert response.status_code == 201
    assert response.json() == {"id": "club-c", "name": "Gamma Club"}

    response = await client.get("/api/v1/clubs/club-c")
    assert response.status_code == 200
    assert response.json()["coaches"] == []


@pytest.mark.asyncio
async def test_duplicate_club_rejected(client: AsyncClient, seeded_db):
    response = await client.post(
        "/api/v1/clubs", headers=auth("admin"), json={"id": "club-a", "name": "Again"}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_malformed_club_id_rejected(client: AsyncClient, seeded_db):
    response = await client.post(
        "/api/v1/clubs", headers=auth("admin"), json={"id": "bad id!", "name": "Bad"}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_only_admin_creates_clubs(client: AsyncClient, seeded_db):
    response = await client.post(
        "/api/v1/clubs", headers=auth("facility_a"), json={"id": "club-x", "name": "X"}
    )
    assert response.status_code == 403
