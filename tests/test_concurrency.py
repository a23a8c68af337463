"""
Concurrency safety tests.

Demonstrates:
1. A write based on a stale read of a ride is rejected by the version check.
2. The transaction runner retries conflicts and gives up with ``ConflictError``.
3. Lost connections surface as ``StoreUnavailableError`` without retrying.
"""

import sqlite3

import pytest
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from src.domain.errors import ConflictError, InsufficientCapacityError, StoreUnavailableError
from src.infrastructure.repositories import RideRepository
from src.infrastructure.transactions import is_conflict, is_unavailable, run_transaction


def locked_error() -> OperationalError:
    return OperationalError("UPDATE rides", {}, sqlite3.OperationalError("database is locked"))


class TestVersionCheck:
    @pytest.mark.asyncio
    async def test_stale_write_is_rejected(self, session_factory, inventory, make_ride):
        ride = await make_ride(total_seats=3)

        async with session_factory() as first, session_factory() as second:
            row_a = await RideRepository(first).get_for_update(ride.id)
            row_b = await RideRepository(second).get_for_update(ride.id)

            row_a.available_seats -= 1
            await first.commit()

            row_b.available_seats -= 1
            with pytest.raises(StaleDataError):
                await second.commit()

        assert (await inventory.require_ride(ride.id)).available_seats == 2


class TestClassification:
    def test_stale_data_is_conflict(self):
        assert is_conflict(StaleDataError("version mismatch"))

    def test_sqlite_lock_is_conflict(self):
        assert is_conflict(locked_error())

    def test_serialization_failure_is_conflict(self):
        class _PgError(Exception):
            sqlstate = "40001"

        assert is_conflict(OperationalError("UPDATE rides", {}, _PgError("could not serialize")))

    def test_other_operational_error_is_unavailable(self):
        exc = OperationalError("SELECT 1", {}, sqlite3.OperationalError("unable to open database file"))
        assert not is_conflict(exc)
        assert is_unavailable(exc)

    def test_domain_errors_are_neither(self):
        exc = InsufficientCapacityError("r1", 2, 1)
        assert not is_conflict(exc)
        assert not is_unavailable(exc)


class TestRunTransaction:
    @pytest.mark.asyncio
    async def test_retries_until_success(self, session_factory):
        calls = []

        async def _flaky(session):
            calls.append(session)
            if len(calls) < 3:
                raise StaleDataError("version mismatch")
            return "ok"

        result = await run_transaction(session_factory, _flaky, max_attempts=3, backoff=0.001)
        assert result == "ok"
        assert len(calls) == 3
        assert len({id(s) for s in calls}) == 3  # fresh session per attempt

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, session_factory, caplog):
        calls = 0

        async def _always_locked(session):
            nonlocal calls
            calls += 1
            raise locked_error()

        with pytest.raises(ConflictError) as info:
            await run_transaction(session_factory, _always_locked, max_attempts=4, backoff=0.001)
        assert calls == 4
        assert info.value.attempts == 4
        assert "giving up" in caplog.text

    @pytest.mark.asyncio
    async def test_unavailable_store_is_not_retried(self, session_factory):
        calls = 0

        async def _disconnected(session):
            nonlocal calls
            calls += 1
            raise InterfaceError("SELECT 1", {}, ConnectionResetError("connection reset"))

        with pytest.raises(StoreUnavailableError):
            await run_transaction(session_factory, _disconnected, max_attempts=3, backoff=0.001)
        assert calls == 1

    @pytest.mark.asyncio
    async def test_domain_errors_propagate_unchanged(self, session_factory):
        calls = 0

        async def _full(session):
            nonlocal calls
            calls += 1
            raise InsufficientCapacityError("r1", 2, 0)

        with pytest.raises(InsufficientCapacityError):
            await run_transaction(session_factory, _full, max_attempts=3, backoff=0.001)
        assert calls == 1

    @pytest.mark.asyncio
    async def test_failed_attempt_rolls_back(self, session_factory, inventory, make_ride):
        ride = await make_ride(total_seats=3)

        async def _decrement_then_fail(session):
            row = await RideRepository(session).get_for_update(ride.id)
            row.available_seats -= 1
            await session.flush()
            raise InsufficientCapacityError(ride.id, 1, 0)

        with pytest.raises(InsufficientCapacityError):
            await run_transaction(session_factory, _decrement_then_fail)
        assert (await inventory.require_ride(ride.id)).available_seats == 3
