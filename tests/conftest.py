"""
Shared test fixtures.

Each test gets its own file-backed SQLite database (via aiosqlite) so the
suite runs without Docker / PostgreSQL, and so concurrent sessions really
are separate connections that can conflict with each other.
"""

from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.domain.entities import Location
from src.domain.enums import GenderPreference
from src.domain.validation import RideSpec
from src.infrastructure import models  # noqa: F401  (registers tables)
from src.infrastructure.database import Base, make_engine, make_session_factory
from src.services.hooks import PostCommitHooks
from src.services.inventory import RideInventory
from src.services.ledger import BookingLedger
from src.services.stats import StatsAccumulator

# Fixed wall clock for the inventory manager (deployment-local, naive)
NOW = datetime(2026, 3, 2, 9, 0)

CAMPUS = Location(31.4697, 74.4098, "Campus Main Gate")
DOWNTOWN = Location(31.5204, 74.3587, "Liberty Market")


def make_spec(**overrides) -> RideSpec:
    values = dict(
        pickup=CAMPUS,
        destination=DOWNTOWN,
        date=(NOW + timedelta(days=1)).date(),
        time="08:30",
        total_seats=3,
        price=150.0,
        description=None,
        gender_preference=GenderPreference.ALL,
    )
    values.update(overrides)
    return RideSpec(**values)


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables in a fresh database file, dispose afterwards."""
    eng = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'rideshare.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


# ── Services ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def hooks() -> AsyncGenerator[PostCommitHooks, None]:
    h = PostCommitHooks()
    yield h
    await h.drain()


@pytest.fixture
def stats(session_factory) -> StatsAccumulator:
    return StatsAccumulator(session_factory, co2_per_seat_kg=0.1)


@pytest.fixture
def inventory(session_factory, stats, hooks) -> RideInventory:
    return RideInventory(
        session_factory, stats=stats, hooks=hooks, clock=lambda: NOW, backoff=0.01
    )


@pytest.fixture
def ledger(session_factory, stats, hooks) -> BookingLedger:
    return BookingLedger(session_factory, stats=stats, hooks=hooks, backoff=0.01)


@pytest.fixture
def make_ride(inventory):
    """Factory: publish a ride with sensible defaults."""

    async def _make(driver_id: str = "driver-1", **overrides):
        return await inventory.create_ride(driver_id, make_spec(**overrides))

    return _make
