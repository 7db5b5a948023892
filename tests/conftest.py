"""
Test fixtures for workout-tracker-api.

Provides a controllable clock, in-memory collaborators and factories for
engines and history entries so tests run offline and deterministically.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Repo root: .../workout-tracker-api
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Make src/ importable so tests can do `import workout_tracker_api...`
for p in {ROOT, SRC}:
    p_str = str(p)
    if p_str not in sys.path:
        sys.path.insert(0, p_str)

from workout_tracker_api.api.routes import get_container
from workout_tracker_api.auth import get_current_user
from workout_tracker_api.config import Settings
from workout_tracker_api.container import AppContainer
from workout_tracker_api.main import app
from workout_tracker_api.models import SubscriptionTier, User, UserSubscription
from workout_tracker_api.repositories import (
    InMemoryBillingProvider,
    InMemoryCounterStore,
    InMemoryExerciseCatalog,
    InMemoryHistoryStore,
    InMemoryIdentityProvider,
    InMemoryWorkoutStore,
)
from workout_tracker_api.services.session_manager import WorkoutSessionManager
from workout_tracker_api.services.workout_engine import WorkoutSessionEngine

from factories import TEST_USER_ID, FakeClock, exercise_by_id


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def user() -> User:
    return User(id=TEST_USER_ID, email="test@example.com")


@pytest.fixture
def identity(user) -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider(user)


@pytest.fixture
def billing() -> InMemoryBillingProvider:
    return InMemoryBillingProvider()


@pytest.fixture
def premium_billing() -> InMemoryBillingProvider:
    return InMemoryBillingProvider(UserSubscription(tier=SubscriptionTier.PREMIUM, is_active=True))


@pytest.fixture
def workout_store() -> InMemoryWorkoutStore:
    return InMemoryWorkoutStore()


@pytest.fixture
def history_store() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def counter_store() -> InMemoryCounterStore:
    return InMemoryCounterStore()


@pytest.fixture
def catalog() -> InMemoryExerciseCatalog:
    return InMemoryExerciseCatalog()


@pytest.fixture
def session_manager(clock) -> WorkoutSessionManager:
    return WorkoutSessionManager(clock=clock)


# ---------------------------------------------------------------------------
# Sample exercises
# ---------------------------------------------------------------------------


@pytest.fixture
def bench():
    return exercise_by_id("barbell_bench_press")


@pytest.fixture
def push_ups():
    return exercise_by_id("push_ups")


@pytest.fixture
def squats():
    return exercise_by_id("squats")


@pytest.fixture
def plank():
    return exercise_by_id("plank")


@pytest.fixture
def running():
    return exercise_by_id("running")


# ---------------------------------------------------------------------------
# Engine factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_engine(session_manager, workout_store, history_store, identity, billing, settings, clock):
    """Build an engine over the shared in-memory fixtures; keyword overrides allowed."""
    def _make(**overrides) -> WorkoutSessionEngine:
        kwargs = dict(
            session_manager=session_manager,
            workout_store=workout_store,
            history_store=history_store,
            identity=identity,
            billing=billing,
            settings=settings,
            clock=clock,
        )
        kwargs.update(overrides)
        return WorkoutSessionEngine(**kwargs)
    return _make


@pytest.fixture
def engine(make_engine) -> WorkoutSessionEngine:
    return make_engine()


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


async def mock_get_current_user() -> str:
    """Mock auth dependency that returns a test user."""
    return TEST_USER_ID


@pytest.fixture
def container(clock, workout_store, history_store, counter_store, catalog, settings) -> AppContainer:
    return AppContainer(
        settings=settings,
        clock=clock,
        workout_store=workout_store,
        history_store=history_store,
        counter_store=counter_store,
        catalog=catalog,
    )


@pytest.fixture
def client(container):
    """Per-test FastAPI TestClient over a fresh in-memory container."""
    app.dependency_overrides[get_current_user] = mock_get_current_user
    app.dependency_overrides[get_container] = lambda: container
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
