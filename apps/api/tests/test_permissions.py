"""
Tests for Authorization Rules
=============================

Pure checks over role predicates and guards; no database involved.
"""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from shuttlecoach.errors import ForbiddenError
from shuttlecoach.models import UserType
from shuttlecoach.permissions import (
    Capability,
    are_in_same_club,
    can_access_video_collection,
    can_author_notes,
    can_modify_coach_collection,
    can_modify_note,
    can_modify_video_collection,
    can_read_coach_collection,
    has_capability,
    is_coach_or_admin,
    require_capability,
    require_modify_coach_collection,
    require_read_coach_collection,
)


def make_user(user_type: UserType, club_id="club-a"):
    return SimpleNamespace(id=uuid4(), user_type=user_type, club_id=club_id)


def coach_collection(owner):
    return SimpleNamespace(id=uuid4(), coach_id=owner.id, coach=owner)


def video_collection(owner, coach=None):
    return SimpleNamespace(
        id=uuid4(),
        owner_id=owner.id,
        assigned_coach_id=coach.id if coach else None,
    )


# =============================================================================
# CAPABILITIES & PREDICATES
# =============================================================================

@pytest.mark.parametrize("user_type,capability,expected", [
    (UserType.STUDENT, Capability.CREATE_VIDEO_COLLECTIONS, True),
    (UserType.STUDENT, Capability.CREATE_COACH_COLLECTIONS, False),
    (UserType.STUDENT, Capability.COACH_STUDENTS, False),
    (UserType.COACH, Capability.CREATE_VIDEO_COLLECTIONS, False),
    (UserType.COACH, Capability.CREATE_COACH_COLLECTIONS, True),
    (UserType.COACH, Capability.COACH_STUDENTS, True),
    (UserType.COACH, Capability.MANAGE_CLUB_COLLECTIONS, False),
    (UserType.FACILITY, Capability.CREATE_COACH_COLLECTIONS, True),
    (UserType.FACILITY, Capability.MANAGE_CLUB_COLLECTIONS, True),
    (UserType.FACILITY, Capability.COACH_STUDENTS, False),
    (UserType.ADMIN, Capability.CREATE_VIDEO_COLLECTIONS, True),
    (UserType.ADMIN, Capability.COACH_STUDENTS, True),
    (UserType.ADMIN, Capability.ADMINISTER, True),
    (UserType.ADMIN, Capability.MANAGE_CLUB_COLLECTIONS, False),
])
def test_role_capabilities(user_type, capability, expected):
    assert has_capability(make_user(user_type), capability) is expected


def test_require_capability_raises_forbidden():
    with pytest.raises(ForbiddenError) as exc:
        require_capability(make_user(UserType.STUDENT), Capability.ADMINISTER, "nope")
    assert exc.value.status_code == 403
    assert exc.value.detail["message"] == "nope"


def test_is_coach_or_admin():
    assert is_coach_or_admin(make_user(UserType.COACH))
    assert is_coach_or_admin(make_user(UserType.ADMIN))
    assert not is_coach_or_admin(make_user(UserType.STUDENT))
    assert not is_coach_or_admin(make_user(UserType.FACILITY))


def test_same_club_requires_both_clubs():
    a = make_user(UserType.STUDENT, "club-a")
    assert are_in_same_club(a, make_user(UserType.COACH, "club-a"))
    assert not are_in_same_club(a, make_user(UserType.COACH, "club-b"))
    assert not are_in_same_club(make_user(UserType.STUDENT, None), make_user(UserType.COACH, None))
    assert not are_in_same_club(a, None)


# =============================================================================
# COACH COLLECTIONS
# =============================================================================

def test_coach_collection_owner_and_admin_modify():
    owner = make_user(UserType.COACH)
    collection = coach_collection(owner)
    assert can_modify_coach_collection(owner, collection)
    assert can_modify_coach_collection(make_user(UserType.ADMIN, None), collection)


def test_coach_collection_facility_modify_same_club_only():
    collection = coach_collection(make_user(UserType.COACH, "club-a"))
    assert can_modify_coach_collection(make_user(UserType.FACILITY, "club-a"), collection)
    assert not can_modify_coach_collection(make_user(UserType.FACILITY, "club-b"), collection)


def test_coach_collection_clubless_facility_cannot_modify():
    collection = coach_collection(make_user(UserType.COACH, None))
    assert not can_modify_coach_collection(make_user(UserType.FACILITY, None), collection)


def test_coach_collection_other_users_cannot_modify():
    collection = coach_collection(make_user(UserType.COACH))
    assert not can_modify_coach_collection(make_user(UserType.COACH), collection)
    assert not can_modify_coach_collection(make_user(UserType.STUDENT), collection)
    with pytest.raises(ForbiddenError):
        require_modify_coach_collection(make_user(UserType.STUDENT), collection)


@pytest.mark.parametrize("user_type,shared,expected", [
    (UserType.STUDENT, True, True),
    (UserType.STUDENT, False, False),
    (UserType.COACH, True, True),
    (UserType.COACH, False, False),
    # A share row alone never grants a facility access
    (UserType.FACILITY, True, False),
])
def test_coach_collection_read_by_share(user_type, shared, expected):
    collection = coach_collection(make_user(UserType.COACH, "club-b"))
    assert can_read_coach_collection(make_user(user_type), collection, shared) is expected


def test_coach_collection_read_denied_message():
    collection = coach_collection(make_user(UserType.COACH))
    with pytest.raises(ForbiddenError) as exc:
        require_read_coach_collection(make_user(UserType.STUDENT), collection, False)
    assert exc.value.detail["message"] == "You do not have permission to view this collection"


# =============================================================================
# VIDEO COLLECTIONS & NOTES
# =============================================================================

def test_video_collection_access():
    owner = make_user(UserType.STUDENT)
    coach = make_user(UserType.COACH)
    collection = video_collection(owner, coach)

    assert can_access_video_collection(owner, collection)
    assert can_access_video_collection(coach, collection)
    assert can_access_video_collection(make_user(UserType.ADMIN), collection)
    assert not can_access_video_collection(make_user(UserType.COACH), collection)
    assert not can_access_video_collection(make_user(UserType.STUDENT), collection)
    assert not can_access_video_collection(make_user(UserType.FACILITY), collection)


def test_unassigned_collection_has_no_coach_access():
    collection = video_collection(make_user(UserType.STUDENT))
    assert not can_access_video_collection(make_user(UserType.COACH), collection)


def test_only_owner_and_admin_modify_video_collection():
    owner = make_user(UserType.STUDENT)
    coach = make_user(UserType.COACH)
    collection = video_collection(owner, coach)

    assert can_modify_video_collection(owner, collection)
    assert can_modify_video_collection(make_user(UserType.ADMIN), collection)
    assert not can_modify_video_collection(coach, collection)


def test_note_authoring_requires_coaching_and_access():
    owner = make_user(UserType.STUDENT)
    coach = make_user(UserType.COACH)
    collection = video_collection(owner, coach)

    assert can_author_notes(coach, collection)
    assert can_author_notes(make_user(UserType.ADMIN), collection)
    assert not can_author_notes(owner, collection)
    assert not can_author_notes(make_user(UserType.COACH), collection)


def test_note_modification_author_or_admin():
    author = make_user(UserType.COACH)
    note = SimpleNamespace(id=uuid4(), coach_id=author.id)

    assert can_modify_note(author, note)
    assert can_modify_note(make_user(UserType.ADMIN), note)
    assert not can_modify_note(make_user(UserType.COACH), note)


# =============================================================================
# OWNERSHIP GATE: EVERY ROLE x OWNERSHIP x CLUB
# =============================================================================

RELATIONS = ("owner", "same_club", "other_club")

COACH_COLLECTION_MODIFY = {
    (UserType.STUDENT, "owner"): True,
    (UserType.STUDENT, "same_club"): False,
    (UserType.STUDENT, "other_club"): False,
    (UserType.COACH, "owner"): True,
    (UserType.COACH, "same_club"): False,
    (UserType.COACH, "other_club"): False,
    (UserType.FACILITY, "owner"): True,
    (UserType.FACILITY, "same_club"): True,
    (UserType.FACILITY, "other_club"): False,
    (UserType.ADMIN, "owner"): True,
    (UserType.ADMIN, "same_club"): True,
    (UserType.ADMIN, "other_club"): True,
}

VIDEO_COLLECTION_MODIFY = {
    (UserType.STUDENT, "owner"): True,
    (UserType.STUDENT, "same_club"): False,
    (UserType.STUDENT, "other_club"): False,
    (UserType.COACH, "owner"): True,
    (UserType.COACH, "same_club"): False,
    (UserType.COACH, "other_club"): False,
    (UserType.FACILITY, "owner"): True,
    (UserType.FACILITY, "same_club"): False,
    (UserType.FACILITY, "other_club"): False,
    (UserType.ADMIN, "owner"): True,
    (UserType.ADMIN, "same_club"): True,
    (UserType.ADMIN, "other_club"): True,
}


def ownership_cases(table):
    """Every requester role against every owner role; owners are their own requester."""
    return [
        pytest.param(
            requester, owner_type, relation, table[(requester, relation)],
            id=f"{requester.value}-{relation}-{owner_type.value}",
        )
        for requester in UserType
        for owner_type in UserType
        for relation in RELATIONS
        if relation != "owner" or owner_type == requester
    ]


def arrange(requester_type, owner_type, relation):
    if relation == "owner":
        user = make_user(requester_type)
        return user, user
    owner = make_user(owner_type, "club-a")
    user = make_user(requester_type, "club-a" if relation == "same_club" else "club-b")
    return user, owner


@pytest.mark.parametrize(
    "requester_type,owner_type,relation,expected", ownership_cases(COACH_COLLECTION_MODIFY)
)
def test_coach_collection_ownership_gate(requester_type, owner_type, relation, expected):
    user, owner = arrange(requester_type, owner_type, relation)
    assert can_modify_coach_collection(user, coach_collection(owner)) is expected


@pytest.mark.parametrize(
    "requester_type,owner_type,relation,expected", ownership_cases(VIDEO_COLLECTION_MODIFY)
)
def test_video_collection_ownership_gate(requester_type, owner_type, relation, expected):
    user, owner = arrange(requester_type, owner_type, relation)
    assert can_modify_video_collection(user, video_collection(owner)) is expected
