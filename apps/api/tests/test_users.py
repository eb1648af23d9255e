"""
Tests for User Endpoints
========================

Tests for:
- Lazy provisioning on first request
- GET/PATCH /api/v1/users/me
- PUT /api/v1/users/me/user-type
- PUT /api/v1/users/me/club
- Profile and image updates
- Admin user management
"""

import base64

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from conftest import auth
from shuttlecoach.models import CoachProfile, StudentProfile, User

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()


# =============================================================================
# PROVISIONING
# =============================================================================

@pytest.mark.asyncio
async def test_missing_identity_header(client: AsyncClient):
    response = await client.get("/api/v1/users/me")
    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "unauthorized"


@pytest.mark.asyncio
async def test_first_request_provisions_student(client: AsyncClient, session_factory):
    response = await client.get("/api/v1/users/me", headers=auth("new-subject"))
    assert response.status_code == 200

    data = response.json()
    assert data["external_id"] == "new-subject"
    assert data["user_type"] == "student"
    assert data["club_id"] is None
    assert data["coach_profile"] is None
    assert data["student_profile"]["skill_level"] == "Beginner"
    assert data["student_profile"]["goals"] == "Learn and improve badminton skills"
    assert data["student_profile"]["display_username"] == "user"


@pytest.mark.asyncio
async def test_provisioning_is_idempotent(client: AsyncClient, session_factory):
    first = await client.get("/api/v1/users/me", headers=auth("repeat-subject"))
    second = await client.get("/api/v1/users/me", headers=auth("repeat-subject"))
    assert first.json()["id"] == second.json()["id"]

    async with session_factory() as session:
        users = (await session.execute(
            select(func.count(User.id)).where(User.external_id == "repeat-subject")
        )).scalar_one()
        profiles = (await session.execute(select(func.count(StudentProfile.id)))).scalar_one()
    assert users == 1
    assert profiles == 1


@pytest.mark.asyncio
async def test_me_returns_role_profiles_only(client: AsyncClient, seeded_db):
    coach = (await client.get("/api/v1/users/me", headers=auth("coach_a1"))).json()
    assert coach["coach_profile"]["display_username"] == "coacha1"
    assert coach["student_profile"] is None

    admin = (await client.get("/api/v1/users/me", headers=auth("admin"))).json()
    assert admin["coach_profile"] is not None
    assert admin["student_profile"] is not None

    facility = (await client.get("/api/v1/users/me", headers=auth("facility_a"))).json()
    assert facility["coach_profile"] is None
    assert facility["student_profile"] is None


@pytest.mark.asyncio
async def test_update_me(client: AsyncClient, seeded_db):
    response = await client.patch(
        "/api/v1/users/me",
        headers=auth("student_a1"),
        json={"first_name": "Amelia", "time_zone": "Europe/London"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["first_name"] == "Amelia"
    assert data["last_name"] == "Archer"
    assert data["time_zone"] == "Europe/London"


# =============================================================================
# ROLE SWITCH
# =============================================================================

@pytest.mark.asyncio
async def test_student_becomes_coach(client: AsyncClient, seeded_db, session_factory):
    response = await client.put(
        "/api/v1/users/me/user-type", headers=auth("student_a1"), json={"user_type": "coach"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["user_type"] == "coach"
    assert data["coach_profile"]["rate"] == 40
    assert data["coach_profile"]["specialties"] == ["Fundamentals", "Technique"]
    assert data["coach_profile"]["display_username"] == "amyarcher"
    assert data["student_profile"] is None

    # The student profile is kept, just hidden
    async with session_factory() as session:
        kept = (await session.execute(
            select(StudentProfile).where(StudentProfile.user_id == seeded_db["student_a1"])
        )).scalar_one_or_none()
    assert kept is not None


@pytest.mark.asyncio
async def test_switch_back_keeps_student_profile(client: AsyncClient, seeded_db):
    headers = auth("student_a2")
    await client.put("/api/v1/users/me/user-type", headers=headers, json={"user_type": "coach"})
    response = await client.put("/api/v1/users/me/user-type", headers=headers, json={"user_type": "student"})

    assert response.status_code == 200
    assert response.json()["student_profile"]["display_username"] == "studenta2s"


@pytest.mark.asyncio
@pytest.mark.parametrize("subject,target", [
    ("student_a1", "admin"),
    ("student_a1", "facility"),
    ("facility_a", "coach"),
    ("admin", "student"),
])
async def test_privileged_role_changes_are_forbidden(client: AsyncClient, seeded_db, subject, target):
    response = await client.put(
        "/api/v1/users/me/user-type", headers=auth(subject), json={"user_type": target}
    )
    assert response.status_code == 403


# =============================================================================
# CLUB MEMBERSHIP
# =============================================================================

@pytest.mark.asyncio
async def test_join_club(client: AsyncClient, seeded_db):
    response = await client.put(
        "/api/v1/users/me/club", headers=auth("student_none"), json={"club_id": "club-b"}
    )
    assert response.status_code == 200
    assert response.json()["club_id"] == "club-b"


@pytest.mark.asyncio
async def test_join_unknown_club(client: AsyncClient, seeded_db):
    response = await client.put(
        "/api/v1/users/me/club", headers=auth("student_none"), json={"club_id": "nowhere"}
    )
    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Invalid club identifier"


@pytest.mark.asyncio
async def test_join_empty_club_id(client: AsyncClient, seeded_db):
    response = await client.put(
        "/api/v1/users/me/club", headers=auth("student_none"), json={"club_id": "  "}
    )
    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Club ID cannot be empty"


@pytest.mark.asyncio
async def test_changing_club_needs_admin(client: AsyncClient, seeded_db):
    response = await client.put(
        "/api/v1/users/me/club", headers=auth("student_a1"), json={"club_id": "club-b"}
    )
    assert response.status_code == 403

    response = await client.put(
        "/api/v1/users/me/club", headers=auth("admin"), json={"club_id": "club-b"}
    )
    assert response.status_code == 200
    assert response.json()["club_id"] == "club-b"


# =============================================================================
# PROFILES & IMAGES
# =============================================================================

@pytest.mark.asyncio
async def test_update_coach_profile(client: AsyncClient, seeded_db):
    response = await client.put(
        "/api/v1/users/me/coach-profile",
        headers=auth("coach_a1"),
        json={"rate": 55, "specialties": ["Net play"]},
    )
    assert response.status_code == 200
    profile = response.json()["coach_profile"]
    assert profile["rate"] == 55
    assert profile["specialties"] == ["Net play"]
    assert profile["teaching_styles"] == ["Patient"]


@pytest.mark.asyncio
async def test_negative_rate_rejected(client: AsyncClient, seeded_db):
    response = await client.put(
        "/api/v1/users/me/coach-profile", headers=auth("coach_a1"), json={"rate": -1}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["rate", "specialties", "teaching_styles"])
async def test_null_coach_profile_field_rejected(client: AsyncClient, seeded_db, field):
    response = await client.put(
        "/api/v1/users/me/coach-profile", headers=auth("coach_a1"), json={field: None}
    )
    assert response.status_code == 400
    assert response.json()["detail"]["field"] == field

    me = await client.get("/api/v1/users/me", headers=auth("coach_a1"))
    assert me.json()["coach_profile"]["rate"] == 30


@pytest.mark.asyncio
async def test_student_cannot_edit_coach_profile(client: AsyncClient, seeded_db):
    response = await client.put(
        "/api/v1/users/me/coach-profile", headers=auth("student_a1"), json={"rate": 10}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_student_profile(client: AsyncClient, seeded_db):
    response = await client.put(
        "/api/v1/users/me/student-profile",
        headers=auth("student_a1"),
        json={"skill_level": "Advanced", "goals": "Win the club ladder"},
    )
    assert response.status_code == 200
    profile = response.json()["student_profile"]
    assert profile["skill_level"] == "Advanced"
    assert profile["goals"] == "Win the club ladder"


@pytest.mark.asyncio
async def test_admin_profile_image_goes_to_both_profiles(client: AsyncClient, seeded_db):
    response = await client.put(
        "/api/v1/users/me/profile-image", headers=auth("admin"), json={"image": PNG_DATA_URL}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["student_profile"]["profile_image"] == PNG_DATA_URL
    assert data["coach_profile"]["profile_image"] == PNG_DATA_URL


@pytest.mark.asyncio
async def test_facility_has_no_profile_image(client: AsyncClient, seeded_db):
    response = await client.put(
        "/api/v1/users/me/profile-image", headers=auth("facility_a"), json={"image": PNG_DATA_URL}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_header_image_for_coach(client: AsyncClient, seeded_db):
    response = await client.put(
        "/api/v1/users/me/coach-header-image", headers=auth("coach_a1"), json={"image": PNG_DATA_URL}
    )
    assert response.status_code == 200
    assert response.json()["coach_profile"]["header_image"] == PNG_DATA_URL

    response = await client.put(
        "/api/v1/users/me/coach-header-image", headers=auth("student_a1"), json={"image": PNG_DATA_URL}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invalid_image_rejected(client: AsyncClient, seeded_db):
    response = await client.put(
        "/api/v1/users/me/profile-image", headers=auth("student_a1"), json={"image": "not base64!"}
    )
    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "Invalid image data format"


# =============================================================================
# ADMIN
# =============================================================================

@pytest.mark.asyncio
async def test_admin_lists_users_by_club(client: AsyncClient, seeded_db):
    response = await client.get(
        "/api/v1/admin/users", headers=auth("admin"), params={"club_id": "club-b"}
    )
    assert response.status_code == 200
    ids = {u["id"] for u in response.json()}
    assert ids == {
        str(seeded_db["student_b1"]),
        str(seeded_db["coach_b1"]),
        str(seeded_db["facility_b"]),
    }


@pytest.mark.asyncio
async def test_admin_endpoints_need_admin(client: AsyncClient, seeded_db):
    response = await client.get("/api/v1/admin/users", headers=auth("coach_a1"))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_promotes_user_to_admin(client: AsyncClient, seeded_db, session_factory):
    response = await client.put(
        f"/api/v1/admin/users/{seeded_db['coach_b1']}",
        headers=auth("admin"),
        json={"user_type": "admin"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["user_type"] == "admin"
    assert data["coach_profile"] is not None
    assert data["student_profile"]["skill_level"] == "Intermediate"

    async with session_factory() as session:
        count = (await session.execute(
            select(func.count(CoachProfile.id)).where(CoachProfile.user_id == seeded_db["coach_b1"])
        )).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_admin_removes_club_membership(client: AsyncClient, seeded_db):
    response = await client.put(
        f"/api/v1/admin/users/{seeded_db['student_a1']}",
        headers=auth("admin"),
        json={"club_id": None},
    )
    assert response.status_code == 200
    assert response.json()["club_id"] is None
    assert response.json()["user_type"] == "student"
