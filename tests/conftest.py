"""
Shared pytest fixtures and configuration for all tests.
"""
import os
from unittest.mock import MagicMock, AsyncMock

import pytest

# Hypothesis configuration for property-based testing
from hypothesis import settings as hypothesis_settings, Verbosity, Phase

from config.settings import Settings
from session.context import SessionContext
from session.memory_store import InMemorySessionStore
from telemetry.service import reset_telemetry

# Default profile: balanced for local development
hypothesis_settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
    print_blob=True,
)

# CI profile: more thorough testing for continuous integration
hypothesis_settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    derandomize=True,
)

# Debug profile: minimal examples for quick debugging
hypothesis_settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    phases=[Phase.explicit, Phase.reuse, Phase.generate],
)

hypothesis_settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


class FakeClock:
    """Controllable monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _no_global_telemetry():
    """Keep the module-level telemetry service from leaking between tests."""
    reset_telemetry()
    yield
    reset_telemetry()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock) -> InMemorySessionStore:
    return InMemorySessionStore(clock=clock)


@pytest.fixture
def app_settings() -> Settings:
    """Settings for unit tests, independent of the process environment."""
    return Settings(
        _env_file=None,
        environment="development",
        session_store_type="memory",
        session_gc_probability=0.0,
    )


@pytest.fixture
def session_context(app_settings, memory_store) -> SessionContext:
    return SessionContext(app_settings, store=memory_store)


@pytest.fixture
def mock_redis() -> MagicMock:
    """Create a mock Redis client for unit tests."""
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.setex = AsyncMock(return_value=True)
    mock.delete = AsyncMock(return_value=1)
    mock.ping = AsyncMock(return_value=True)
    mock.aclose = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def failing_store() -> MagicMock:
    """A store whose every round trip fails like an unreachable Redis."""
    from errors.exceptions import StoreUnavailable

    store = MagicMock()
    store.connect = AsyncMock(return_value=None)
    store.disconnect = AsyncMock(return_value=None)
    store.load = AsyncMock(side_effect=StoreUnavailable())
    store.save = AsyncMock(side_effect=StoreUnavailable())
    store.delete = AsyncMock(side_effect=StoreUnavailable())
    store.health_check = AsyncMock(return_value=False)
    return store
