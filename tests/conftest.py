"""Pytest configuration and fixtures."""

import asyncio
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from fitup.config import Settings
from fitup.db import Database, init_db, seed_exercises
from fitup.models.exercises import COMMON_EXERCISES
from fitup.models.profile import UserRole
from fitup.realtime.hub import Hub
from fitup.services.container import build_services
from fitup.web.app import create_app

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


class FakeSocket:
    """Stands in for a WebSocket: records frames and close calls."""

    def __init__(self, fail: bool = False):
        self.sent: list[dict] = []
        self.fail = fail
        self.close_code: int | None = None
        self.close_reason: str | None = None

    async def send_json(self, data):
        if self.fail:
            raise ConnectionError("socket gone")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None):
        self.close_code = code
        self.close_reason = reason

    def frames(self, event_type: str) -> list[dict]:
        return [frame for frame in self.sent if frame.get("type") == event_type]

    async def wait_for(self, count: int, timeout: float = 1.0) -> None:
        """Wait until at least ``count`` frames were written."""

        async def _poll():
            while len(self.sent) < count:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def temp_db_path():
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
async def database(temp_db_path):
    """Initialized database with the built-in exercise library."""
    await init_db(temp_db_path)
    await seed_exercises(temp_db_path, COMMON_EXERCISES)
    return Database(temp_db_path)


@pytest.fixture
async def services(database):
    """Fully wired services over the test database."""
    services = build_services(database, hub=Hub(ping_interval=0, drain_timeout=0.5))
    yield services
    await services.hub.close()


@pytest.fixture
def socket_factory():
    return FakeSocket


@pytest.fixture
def repos(services):
    return services.repos


@pytest.fixture
def sample_metadata():
    """Plan generation metadata for an intermediate strength trainee."""
    return {
        "level": "intermediate",
        "goals": ["strength", "muscle_gain"],
        "equipment": ["barbell", "dumbbell", "bodyweight"],
        "frequency": 4,
        "time_per_workout": 60,
        "limitations": [],
    }


@pytest.fixture
def beginner_metadata():
    """Plan generation metadata for a bodyweight-only beginner."""
    return {
        "level": "beginner",
        "goals": ["general_fitness"],
        "equipment": ["bodyweight"],
        "frequency": 3,
        "time_per_workout": 30,
    }


@pytest.fixture
async def active_plan(services, sample_metadata):
    """An active plan for user "alice"."""
    return await services.plans.create_plan("alice", sample_metadata)


@pytest.fixture
def first_workout(active_plan):
    """The first training day of alice's active plan."""
    return active_plan.metadata.workout_days[0]


@pytest.fixture
def settings(temp_db_path):
    return Settings(
        jwt_secret=TEST_SECRET,
        database_url=f"sqlite:///{temp_db_path}",
        frontend_url="http://testserver",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """Test client with the lifespan (database, hub) running."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_headers(app):
    """Build Authorization headers for any user and role."""

    def _make(user_id: str, role: UserRole = UserRole.USER, email: str | None = None) -> dict:
        token = app.state.tokens.create_access_token(user_id, role, email)
        return {"Authorization": f"Bearer {token}"}

    return _make
