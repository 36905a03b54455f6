"""Pytest configuration and fixtures for backend tests."""

from datetime import date
from typing import AsyncGenerator
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import JSON, StaticPool, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from racecalendar.core.database import Base, get_db
from racecalendar.core.session import SessionContext, SessionUser
from racecalendar.main import app as main_app


# -------------------------------------------------------------------------
# SQLite JSONB Compatibility - Convert JSONB to JSON for SQLite
# -------------------------------------------------------------------------

@event.listens_for(Base.metadata, "before_create")
def _convert_jsonb_to_json(target, connection, **kw):
    """Convert JSONB columns to JSON for SQLite compatibility."""
    if connection.dialect.name == "sqlite":
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, JSONB):
                    column.type = JSON()

# Import all models to ensure they're registered with Base
from racecalendar.models import Race, RaceComment, RaceLike, User  # noqa: E402,F401


# -------------------------------------------------------------------------
# Database Fixtures
# -------------------------------------------------------------------------


@pytest.fixture
async def async_engine():
    """Create an async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def app(db_session: AsyncSession) -> FastAPI:
    """Create a FastAPI app instance with test database."""

    async def override_get_db():
        yield db_session

    main_app.dependency_overrides[get_db] = override_get_db
    yield main_app
    main_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# -------------------------------------------------------------------------
# User Fixtures
# -------------------------------------------------------------------------


async def _add_user(db_session: AsyncSession, user_id: str, name: str, email: str) -> User:
    user = User(id=user_id, name=name, email=email, interests=["trail"])
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user."""
    return await _add_user(db_session, "a" * 24, "Test Runner", "runner@example.com")


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    """Create a second user who owns nothing by default."""
    return await _add_user(db_session, "b" * 24, "Other Runner", "other@example.com")


def _session_for(user: User) -> SessionContext:
    return SessionContext(user=SessionUser(id=user.id, name=user.name, email=user.email))


@pytest.fixture
def session_store() -> dict[str, SessionContext]:
    """In-memory stand-in for the Redis session store."""
    return {}


@pytest.fixture
def mock_sessions(session_store: dict[str, SessionContext]):
    """Patch session lookups where the auth endpoints import them."""

    async def mock_get_session(session_id: str) -> SessionContext | None:
        return session_store.get(session_id)

    async def mock_delete_session(session_id: str) -> None:
        session_store.pop(session_id, None)

    # Patch at the location where it's imported, not where it's defined
    with patch("racecalendar.api.v1.endpoints.auth.get_session", mock_get_session):
        with patch("racecalendar.api.v1.endpoints.auth.delete_session", mock_delete_session):
            yield session_store


@pytest.fixture
async def auth_client(
    app: FastAPI,
    test_user: User,
    mock_sessions: dict[str, SessionContext],
) -> AsyncGenerator[AsyncClient, None]:
    """Create an HTTP client signed in as ``test_user``."""
    session_id = f"test_session_{test_user.id}"
    mock_sessions[session_id] = _session_for(test_user)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={"session_id": session_id},
    ) as ac:
        yield ac


@pytest.fixture
async def other_client(
    app: FastAPI,
    other_user: User,
    mock_sessions: dict[str, SessionContext],
) -> AsyncGenerator[AsyncClient, None]:
    """Create an HTTP client signed in as ``other_user``."""
    session_id = f"test_session_{other_user.id}"
    mock_sessions[session_id] = _session_for(other_user)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={"session_id": session_id},
    ) as ac:
        yield ac


# -------------------------------------------------------------------------
# Race Fixtures
# -------------------------------------------------------------------------


@pytest.fixture
async def sample_race(db_session: AsyncSession, test_user: User) -> Race:
    """Create a race owned by ``test_user``."""
    race = Race(
        owner_id=test_user.id,
        title="Dolomiti Trail",
        description="Sentieri tra le cime",
        length=21.5,
        race_date=date(2024, 6, 1),
        typology="trail",
        latitude=46.41,
        longitude=11.84,
        comments=[],
        likes=[],
    )
    db_session.add(race)
    await db_session.commit()
    return race


@pytest.fixture
async def sample_races(db_session: AsyncSession, test_user: User) -> list[Race]:
    """Create three races posted out of date order."""
    races = [
        Race(
            owner_id=test_user.id,
            title=title,
            length=length,
            race_date=race_date,
            typology=typology,
            comments=[],
            likes=[],
        )
        for title, length, race_date, typology in (
            ("Garda Half", 21.1, date(2024, 5, 1), "road"),
            ("Lavaredo Ultra", 120.0, date(2024, 3, 1), "ultra"),
            ("Adige Marathon", 42.2, date(2024, 4, 1), "road"),
        )
    ]
    db_session.add_all(races)
    await db_session.commit()
    return races
