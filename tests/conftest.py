"""Pytest configuration and shared fixtures.

Usage Guide:
- For ORM model tests: import factories from tests.factories
- For orchestrator tests: use session_factory + clock so every component
  shares the same database file and the same frozen "now"
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_sync.config import get_settings
from tenant_sync.db.engine import build_engine, build_session_factory
from tenant_sync.db.models import Base

# -----------------------------------------------------------------------------
# Test Timeline Constants
#
# Define a consistent "test epoch" for deterministic date matching across tests.
# All hardcoded dates should reference these constants for consistency.
# -----------------------------------------------------------------------------

JAN_01 = datetime(2024, 1, 1, 0, 0, 0, tzinfo=UTC)
JAN_08 = datetime(2024, 1, 8, 0, 0, 0, tzinfo=UTC)
JAN_15 = datetime(2024, 1, 15, 0, 0, 0, tzinfo=UTC)
JAN_22 = datetime(2024, 1, 22, 0, 0, 0, tzinfo=UTC)
MAR_01 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=UTC)  # Default frozen "now"

SEVEN_DAYS = timedelta(days=7)
NINETY_DAYS = timedelta(days=90)


class FrozenClock:
    """Callable clock returning a fixed instant until advanced."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> datetime:
        self.now = self.now + delta
        return self.now


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Ensure each test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
async def test_engine(tmp_path):
    """Create a file-backed SQLite engine for tests.

    A file (not :memory:) lets concurrent sessions see each other's
    commits, which the orchestrator and lock tests rely on.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test engine."""
    return build_session_factory(test_engine)


@pytest.fixture
async def db_session(session_factory):
    """Create an async session with auto-rollback.

    Commit explicitly when the data must be visible to components
    that open their own sessions.
    """
    session: AsyncSession
    async with session_factory() as session:
        yield session
        await session.rollback()


# -----------------------------------------------------------------------------
# Utility Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def clock() -> FrozenClock:
    """Frozen clock starting at MAR_01."""
    return FrozenClock(MAR_01)
