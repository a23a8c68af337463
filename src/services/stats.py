"""
Profile Stats Accumulator.

Best-effort counters on the ``users`` table: rides offered, rides joined,
savings and CO2 saved.  Runs outside the booking transaction (see
``PostCommitHooks``) and uses database-side increments so concurrent
bookings by the same user do not overwrite each other.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import settings
from src.domain.entities import UserProfile
from src.domain.errors import UserNotFoundError, ValidationError
from src.domain.impact import RIDE_OFFERED, StatsDelta, booking_impact
from src.infrastructure.repositories import UserRepository
from src.infrastructure.transactions import run_transaction

logger = logging.getLogger(__name__)


class StatsAccumulator:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        co2_per_seat_kg: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.co2_per_seat_kg = (
            settings.co2_saved_per_seat_kg if co2_per_seat_kg is None else co2_per_seat_kg
        )

    # ── Profiles ──────────────────────────────────────────────────────

    async def create_or_update_user(
        self, uid: str, *, display_name: str = "", email: str = "", gender: str = ""
    ) -> UserProfile:
        if not uid or not uid.strip():
            raise ValidationError("User id is required", field="uid")

        async def _upsert(session: AsyncSession) -> UserProfile:
            return await UserRepository(session).upsert(
                uid, display_name=display_name, email=email, gender=gender
            )

        return await run_transaction(self.session_factory, _upsert)

    async def get_user(self, uid: str) -> UserProfile:
        async def _get(session: AsyncSession) -> Optional[UserProfile]:
            return await UserRepository(session).get_by_id(uid)

        profile = await run_transaction(self.session_factory, _get)
        if profile is None:
            raise UserNotFoundError(uid)
        return profile

    # ── Counters ──────────────────────────────────────────────────────

    async def apply(self, uid: str, delta: StatsDelta) -> bool:
        async def _increment(session: AsyncSession) -> bool:
            return await UserRepository(session).increment_stats(uid, delta)

        updated = await run_transaction(self.session_factory, _increment)
        if not updated:
            logger.warning("No profile for user %s, stats update skipped", uid)
        return updated

    async def record_booking(self, rider_id: str, seats: int, total_price: float) -> bool:
        return await self.apply(
            rider_id, booking_impact(seats, total_price, self.co2_per_seat_kg)
        )

    async def record_cancellation(self, rider_id: str, seats: int, total_price: float) -> bool:
        return await self.apply(
            rider_id, -booking_impact(seats, total_price, self.co2_per_seat_kg)
        )

    async def record_ride_offered(self, driver_id: str) -> bool:
        return await self.apply(driver_id, RIDE_OFFERED)
