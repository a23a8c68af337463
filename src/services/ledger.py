"""
Booking Ledger
==============

Owns the ``Booking`` entity.  Reserve and cancel are the only writers of
``rides.available_seats`` besides the ride cascade, and both go through a
single optimistic transaction spanning the ride row and the booking row.

Reserve
-------
1. Read the ride *inside* the transaction (snapshots taken earlier are
   never trusted).
2. ``Ride.reserve_seats`` rejects the request with
   ``InsufficientCapacityError`` unless every requested seat is free.
3. Write the decremented ride (version-checked) and the new confirmed
   booking, then commit.  If another booking committed against the same
   ride in between, the version check fails, the runner retries from
   step 1 and the retry sees the real seat count.
4. After the commit, the rider's stats are updated as a post-commit hook.

Cancel
------
Seats are credited back **only** if the booking is still ``confirmed``.
A second cancel finds it ``cancelled`` and returns without writing, so
retried or duplicated cancel calls never double-credit the ride.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import settings
from src.domain.entities import Booking
from src.domain.enums import BookingStatus
from src.domain.errors import (
    BookingNotFoundError,
    RideNotFoundError,
    ValidationError,
)
from src.domain.validation import validate_seat_request
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


class BookingLedger:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        stats: Optional[StatsAccumulator] = None,
        hooks: Optional[PostCommitHooks] = None,
        max_attempts: Optional[int] = None,
        backoff: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.stats = stats
        self.hooks = hooks or PostCommitHooks()
        self.max_attempts = max_attempts
        self.backoff = backoff

    async def _transaction(self, fn):
        return await run_transaction(
            self.session_factory, fn, max_attempts=self.max_attempts, backoff=self.backoff
        )

    # ── Reserve ───────────────────────────────────────────────────────

    async def create_booking(
        self,
        ride_id: str,
        rider_id: str,
        seats: int = 1,
        driver_id: Optional[str] = None,
    ) -> Booking:
        validate_seat_request(seats, settings.max_seats_per_ride)
        if not rider_id or not rider_id.strip():
            raise ValidationError("Rider id is required", field="rider_id")

        async def _reserve(session: AsyncSession) -> Booking:
            rides = RideRepository(session)
            row = await rides.get_for_update(ride_id)
            if row is None:
                raise RideNotFoundError(ride_id)
            ride = ride_to_entity(row)
            if driver_id is not None and driver_id != ride.driver_id:
                raise ValidationError(
                    "Driver does not match the ride's driver", field="driver_id"
                )
            if rider_id == ride.driver_id:
                raise ValidationError("Drivers cannot book their own ride", field="rider_id")

            ride.reserve_seats(seats)
            rides.apply(row, ride)
            await session.flush()  # version check on the ride happens here

            booking_row = await BookingRepository(session).create(
                Booking(
                    ride_id=ride_id,
                    user_id=rider_id,
                    driver_id=ride.driver_id,
                    seats=seats,
                    total_price=round(seats * ride.price, 2),
                    status=BookingStatus.CONFIRMED,
                )
            )
            await session.flush()
            return booking_to_entity(booking_row)

        booking = await self._transaction(_reserve)
        logger.info(
            "Booking %s confirmed: %d seat(s) on ride %s for %s",
            booking.id, booking.seats, ride_id, rider_id,
        )
        if self.stats is not None:
            self.hooks.fire(
                "booking_created",
                self.stats.record_booking(rider_id, booking.seats, booking.total_price),
            )
        return booking

    # ── Reads ─────────────────────────────────────────────────────────

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        async def _get(session: AsyncSession) -> Optional[Booking]:
            return await BookingRepository(session).get_by_id(booking_id)

        return await self._transaction(_get)

    async def query_by_user(self, user_id: str) -> list[Booking]:
        async def _query(session: AsyncSession) -> list[Booking]:
            return await BookingRepository(session).list_by_user(user_id)

        return await self._transaction(_query)

    async def query_by_ride(self, ride_id: str) -> list[Booking]:
        async def _query(session: AsyncSession) -> list[Booking]:
            return await BookingRepository(session).list_by_ride(ride_id)

        return await self._transaction(_query)

    # ── Cancel ────────────────────────────────────────────────────────

    async def cancel_booking(self, booking_id: str, ride_id: Optional[str] = None) -> Booking:
        async def _cancel(session: AsyncSession) -> tuple[Booking, BookingStatus]:
            bookings = BookingRepository(session)
            rides = RideRepository(session)

            booking_row = await bookings.get_for_update(booking_id)
            if booking_row is None:
                raise BookingNotFoundError(booking_id)
            target_ride = ride_id or booking_row.ride_id
            if target_ride != booking_row.ride_id:
                raise ValidationError(
                    f"Booking {booking_id} does not belong to ride {target_ride}",
                    field="ride_id",
                )
            ride_row = await rides.get_for_update(target_ride)
            if ride_row is None:
                raise RideNotFoundError(target_ride)

            booking = booking_to_entity(booking_row)
            previous = booking.status
            if previous == BookingStatus.CANCELLED:
                return booking, previous

            credit = previous == BookingStatus.CONFIRMED
            booking.transition_to(BookingStatus.CANCELLED)
            if credit:
                ride = ride_to_entity(ride_row)
                ride.release_seats(booking.seats)
                rides.apply(ride_row, ride)
            bookings.apply(booking_row, booking)
            await session.flush()
            return booking_to_entity(booking_row), previous

        booking, previous = await self._transaction(_cancel)
        if previous == BookingStatus.CONFIRMED:
            logger.info(
                "Booking %s cancelled, %d seat(s) returned to ride %s",
                booking_id, booking.seats, booking.ride_id,
            )
            if self.stats is not None:
                self.hooks.fire(
                    "booking_cancelled",
                    self.stats.record_cancellation(
                        booking.user_id, booking.seats, booking.total_price
                    ),
                )
        else:
            logger.info(
                "Booking %s cancelled from %s, no seats returned", booking_id, previous.value
            )
        return booking

    # ── Complete ──────────────────────────────────────────────────────

    async def complete_booking(self, booking_id: str) -> Booking:
        async def _complete(session: AsyncSession) -> Booking:
            bookings = BookingRepository(session)
            row = await bookings.get_for_update(booking_id)
            if row is None:
                raise BookingNotFoundError(booking_id)
            booking = booking_to_entity(row)
            if booking.status == BookingStatus.COMPLETED:
                return booking
            booking.transition_to(BookingStatus.COMPLETED)
            bookings.apply(row, booking)
            await session.flush()
            return booking_to_entity(row)

        booking = await self._transaction(_complete)
        logger.info("Booking %s completed", booking_id)
        return booking
