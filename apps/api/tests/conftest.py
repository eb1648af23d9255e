"""
Pytest Configuration and Fixtures
=================================

Shared fixtures for API tests.

Each test runs against its own SQLite file so requests and direct session
checks see the same committed state.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

from typing import AsyncGenerator, Dict, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from shuttlecoach.config import settings
from shuttlecoach.database import Base
from shuttlecoach.dependencies import get_db
from shuttlecoach.models import Club, CoachProfile, StudentProfile, User, UserType
from main import app


def auth(external_id: str) -> Dict[str, str]:
    """Identity header as the gateway would set it."""
    return {settings.auth_subject_header: external_id}


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client bound to the test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def _user(
    external_id: str,
    user_type: UserType,
    club_id: Optional[str],
    first_name: str,
    last_name: str,
) -> User:
    return User(
        id=uuid4(),
        external_id=external_id,
        user_type=user_type,
        club_id=club_id,
        first_name=first_name,
        last_name=last_name,
        email=f"{external_id}@example.com",
    )


@pytest_asyncio.fixture(scope="function")
async def seeded_db(session_factory) -> Dict[str, object]:
    """
    Seed the database with test data.

    Creates:
    - clubs "club-a" and "club-b"
    - students: student_a1, student_a2 (club-a), student_b1 (club-b),
      student_none (no club)
    - coaches: coach_a1, coach_a2 (club-a), coach_b1 (club-b)
    - facilities: facility_a (club-a), facility_b (club-b)
    - admin (club-a)

    Every user's external id is its key, so ``auth("coach_a1")`` acts as
    that user.
    """
    users = {
        "student_a1": _user("student_a1", UserType.STUDENT, "club-a", "Amy", "Archer"),
        "student_a2": _user("student_a2", UserType.STUDENT, "club-a", "Ben", "Baker"),
        "student_b1": _user("student_b1", UserType.STUDENT, "club-b", "Cara", "Cole"),
        "student_none": _user("student_none", UserType.STUDENT, None, "Dev", "Drake"),
        "coach_a1": _user("coach_a1", UserType.COACH, "club-a", "Eve", "Evans"),
        "coach_a2": _user("coach_a2", UserType.COACH, "club-a", "Finn", "Ford"),
        "coach_b1": _user("coach_b1", UserType.COACH, "club-b", "Gus", "Grant"),
        "facility_a": _user("facility_a", UserType.FACILITY, "club-a", "Hal", "Hall"),
        "facility_b": _user("facility_b", UserType.FACILITY, "club-b", "Ivy", "Irwin"),
        "admin": _user("admin", UserType.ADMIN, "club-a", "Jo", "Jones"),
    }
    coach_rates = {"coach_a1": 30, "coach_a2": 60, "coach_b1": 45, "admin": 50}
    coach_specialties = {
        "coach_a1": ["Footwork", "Doubles"],
        "coach_a2": ["Smash"],
        "coach_b1": ["Doubles", "Defense"],
        "admin": ["Administration"],
    }

    async with session_factory() as session:
        session.add_all([Club(id="club-a", name="Alpha Club"), Club(id="club-b", name="Beta Club")])
        session.add_all(users.values())
        await session.flush()

        for key, user in users.items():
            if user.user_type in (UserType.STUDENT, UserType.ADMIN):
                session.add(StudentProfile(
                    user_id=user.id,
                    display_username=f"{key.replace('_', '')}s",
                    skill_level="Beginner",
                ))
            if user.user_type in (UserType.COACH, UserType.ADMIN):
                session.add(CoachProfile(
                    user_id=user.id,
                    display_username=key.replace("_", ""),
                    bio=f"{user.first_name} coaches badminton",
                    specialties=coach_specialties[key],
                    teaching_styles=["Patient"] if key != "coach_a2" else ["Intense"],
                    rate=coach_rates[key],
                    is_verified=key == "coach_a1",
                ))
        await session.commit()

    return {key: user.id for key, user in users.items()}
