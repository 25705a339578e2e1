"""
Test configuration and fixtures for LiveScore

Tests run against an in-memory SQLite database through aiosqlite and the
in-process broadcaster, so no Postgres or Redis is needed.

Usage:
    pytest tests/
"""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BROADCAST_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("REQUIRE_ADMIN_AUTH", "true")

import pytest
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient
from fastapi import FastAPI

from app.core.auth import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models import Match  # noqa: F401
from app.models.enums import Sport
from app.rules.registry import rules_for
from app.schemas.match import MatchCreate
from app.schemas.state import MatchSnapshot
from app.services.broadcaster import Broadcaster
from app.services.match_service import MatchService


class FakeClock:
    """Settable clock for deterministic timer arithmetic"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 14, 15, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_match():
    """Factory for an in-memory SCHEDULED match between CSE and ECE"""
    def _make(sport: Sport, **options) -> MatchSnapshot:
        create = MatchCreate(team_a="CSE", team_b="ECE", **options)
        return MatchSnapshot(
            id="match-1",
            sport=sport,
            team_a=create.team_a,
            team_b=create.team_b,
            state=rules_for(sport).new_state(sport, create),
        )
    return _make


@pytest.fixture
def play(clock):
    """Apply a sequence of actions, returning the final match and all events"""
    def _play(match: MatchSnapshot, *actions: dict):
        events = []
        for action in actions:
            match, new_events = rules_for(match.sport).apply(match, action, clock())
            events.extend(new_events)
        return match, events
    return _play


@pytest.fixture
async def db_engine():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def async_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def broadcaster() -> Broadcaster:
    return Broadcaster(queue_size=10)


@pytest.fixture
def match_service(async_session, broadcaster, clock) -> MatchService:
    return MatchService(async_session, broadcaster, clock)


@pytest.fixture
async def test_app(session_factory, broadcaster) -> AsyncGenerator[FastAPI, None]:
    """
    App with the test database and broadcaster wired in.

    ASGITransport does not run startup handlers, so app.state is set here.
    """
    async def get_test_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = get_test_db
    app.state.broadcaster = broadcaster
    app.state.redis = None

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def test_client(test_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_headers() -> dict:
    token = create_access_token({"sub": "admin-1", "name": "Scorer"}, token_type="admin")
    return {"Authorization": f"Bearer {token}"}


# Markers for different test types
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
