"""
Ride Inventory Manager
======================

Owns the ``Ride`` entity and its seat-count invariants.

* ``create_ride`` validates the offer before touching the store and
  starts every ride with ``available_seats == total_seats``.
* ``get_ride`` / ``query_*`` are plain snapshot reads: they carry no
  freshness guarantee, booking decisions re-read inside a transaction.
* ``cancel_ride`` / ``complete_ride`` change status and cascade to the
  ride's bookings in the same optimistic transaction, so the seat
  conservation law holds afterwards.

Known limitation
----------------
``query_upcoming`` filters ``available_seats > 0`` after the
``LIMIT`` is applied, so a page may hold fewer than ``limit`` bookable
rides when fully-booked rides occupy part of it.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import settings
from src.domain.entities import Booking, Ride, SeatAudit
from src.domain.enums import BookingStatus, GenderPreference, RideStatus
from src.domain.errors import RideNotFoundError, ValidationError
from src.domain.validation import RideSpec, local_now, validate_ride_spec
from src.infrastructure.repositories import (
    BookingRepository,
    RideRepository,
    booking_to_entity,
    ride_to_entity,
)
from src.infrastructure.transactions import run_transaction
from src.services.hooks import PostCommitHooks
from src.services.stats import StatsAccumulator

logger = logging.getLogger(__name__)


class RideInventory:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        stats: Optional[StatsAccumulator] = None,
        hooks: Optional[PostCommitHooks] = None,
        clock: Optional[Callable[[], datetime]] = None,
        max_attempts: Optional[int] = None,
        backoff: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.stats = stats
        self.hooks = hooks or PostCommitHooks()
        self.clock = clock or (lambda: local_now(settings.utc_offset_hours))
        self.max_attempts = max_attempts
        self.backoff = backoff

    async def _transaction(self, fn):
        return await run_transaction(
            self.session_factory, fn, max_attempts=self.max_attempts, backoff=self.backoff
        )

    # ── Create ────────────────────────────────────────────────────────

    async def create_ride(self, driver_id: str, spec: RideSpec) -> Ride:
        if not driver_id or not driver_id.strip():
            raise ValidationError("Driver id is required", field="driver_id")
        validate_ride_spec(
            spec,
            self.clock(),
            max_seats=settings.max_seats_per_ride,
            min_lead_minutes=settings.min_departure_lead_minutes,
        )

        ride = Ride(
            driver_id=driver_id,
            pickup=spec.pickup,
            destination=spec.destination,
            date=spec.date,
            time=spec.time,
            total_seats=spec.total_seats,
            available_seats=spec.total_seats,
            price=float(spec.price),
            status=RideStatus.UPCOMING,
            description=spec.description or None,
            gender_preference=spec.gender_preference,
        )

        async def _create(session: AsyncSession) -> Ride:
            return await RideRepository(session).create(ride)

        created = await self._transaction(_create)
        logger.info(
            "Ride %s created by %s (%d seats @ %.2f)",
            created.id, driver_id, created.total_seats, created.price,
        )
        if self.stats is not None:
            self.hooks.fire("ride_offered", self.stats.record_ride_offered(driver_id))
        return created

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_ride(self, ride_id: str) -> Optional[Ride]:
        async def _get(session: AsyncSession) -> Optional[Ride]:
            return await RideRepository(session).get_by_id(ride_id)

        return await self._transaction(_get)

    async def require_ride(self, ride_id: str) -> Ride:
        ride = await self.get_ride(ride_id)
        if ride is None:
            raise RideNotFoundError(ride_id)
        return ride

    async def query_upcoming(
        self,
        limit: Optional[int] = None,
        gender_preference: Optional[GenderPreference] = None,
    ) -> list[Ride]:
        limit = limit or settings.upcoming_rides_default_limit
        if limit < 1:
            raise ValidationError("Limit must be positive", field="limit")
        today = self.clock().date()

        async def _query(session: AsyncSession) -> list[Ride]:
            return await RideRepository(session).list_upcoming(today, limit)

        page = await self._transaction(_query)
        rides = [r for r in page if r.available_seats > 0 and r.accepts(gender_preference)]
        if len(rides) < len(page):
            logger.debug(
                "Upcoming query dropped %d of %d rides after filtering",
                len(page) - len(rides), len(page),
            )
        return rides

    async def query_by_driver(self, driver_id: str) -> list[Ride]:
        async def _query(session: AsyncSession) -> list[Ride]:
            return await RideRepository(session).list_by_driver(driver_id)

        return await self._transaction(_query)

    async def seat_audit(self, ride_id: str) -> SeatAudit:
        """Check the conservation law for one ride in a single read."""

        async def _audit(session: AsyncSession) -> Optional[SeatAudit]:
            ride = await RideRepository(session).get_by_id(ride_id)
            if ride is None:
                return None
            reserved = await BookingRepository(session).reserved_seats(ride_id)
            return SeatAudit(
                ride_id=ride_id,
                total_seats=ride.total_seats,
                available_seats=ride.available_seats,
                reserved_seats=reserved,
            )

        audit = await self._transaction(_audit)
        if audit is None:
            raise RideNotFoundError(ride_id)
        if not audit.balanced:
            logger.error(
                "Seat conservation violated on ride %s: %d available + %d reserved != %d",
                ride_id, audit.available_seats, audit.reserved_seats, audit.total_seats,
            )
        return audit

    # ── Status transitions ────────────────────────────────────────────

    async def set_status(self, ride_id: str, status: RideStatus) -> Ride:
        if status == RideStatus.CANCELLED:
            return await self.cancel_ride(ride_id)
        if status == RideStatus.COMPLETED:
            return await self.complete_ride(ride_id)
        raise ValidationError(f"Cannot set ride status to {status.value}", field="status")

    async def cancel_ride(self, ride_id: str) -> Ride:
        """Cancel the ride and every live booking on it, returning their seats."""

        async def _cancel(session: AsyncSession) -> tuple[Ride, list[Booking]]:
            rides = RideRepository(session)
            bookings = BookingRepository(session)

            row = await rides.get_for_update(ride_id)
            if row is None:
                raise RideNotFoundError(ride_id)
            ride = ride_to_entity(row)
            if ride.status == RideStatus.CANCELLED:
                return ride, []

            ride.transition_to(RideStatus.CANCELLED)
            released: list[Booking] = []
            live = await bookings.list_for_update(
                ride_id, (BookingStatus.CONFIRMED, BookingStatus.PENDING)
            )
            for booking_row in live:
                booking = booking_to_entity(booking_row)
                held = booking.holds_seats
                booking.transition_to(BookingStatus.CANCELLED)
                if held:
                    ride.release_seats(booking.seats)
                    released.append(booking)
                bookings.apply(booking_row, booking)
            rides.apply(row, ride)
            await session.flush()
            return ride_to_entity(row), released

        ride, released = await self._transaction(_cancel)
        logger.info(
            "Ride %s cancelled, %d bookings released", ride_id, len(released)
        )
        if self.stats is not None:
            for booking in released:
                self.hooks.fire(
                    "booking_cancelled",
                    self.stats.record_cancellation(
                        booking.user_id, booking.seats, booking.total_price
                    ),
                )
        return ride

    async def complete_ride(self, ride_id: str) -> Ride:
        """Mark the ride and its confirmed bookings completed; seats stay consumed."""

        async def _complete(session: AsyncSession) -> Ride:
            rides = RideRepository(session)
            bookings = BookingRepository(session)

            row = await rides.get_for_update(ride_id)
            if row is None:
                raise RideNotFoundError(ride_id)
            ride = ride_to_entity(row)
            if ride.status == RideStatus.COMPLETED:
                return ride

            ride.transition_to(RideStatus.COMPLETED)
            for booking_row in await bookings.list_for_update(
                ride_id, (BookingStatus.CONFIRMED,)
            ):
                booking = booking_to_entity(booking_row)
                booking.transition_to(BookingStatus.COMPLETED)
                bookings.apply(booking_row, booking)
            rides.apply(row, ride)
            await session.flush()
            return ride_to_entity(row)

        ride = await self._transaction(_complete)
        logger.info("Ride %s completed", ride_id)
        return ride
