"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Reads return detached domain entities;
``*_for_update`` helpers return the ORM row itself so a transaction can
mutate it and have the version check applied on flush.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import BookingModel, RideModel, UserModel, utcnow
from src.domain.entities import Booking, Location, Ride, UserProfile
from src.domain.enums import SEAT_HOLDING_STATUSES, BookingStatus, RideStatus
from src.domain.impact import StatsDelta


# ── Mapping ───────────────────────────────────────────────────────────


def ride_to_entity(row: RideModel) -> Ride:
    return Ride(
        id=row.id,
        driver_id=row.driver_id,
        pickup=Location(row.pickup_lat, row.pickup_lng, row.pickup),
        destination=Location(row.destination_lat, row.destination_lng, row.destination),
        date=row.date,
        time=row.time,
        total_seats=row.total_seats,
        available_seats=row.available_seats,
        price=row.price,
        status=RideStatus(row.status),
        description=row.description,
        gender_preference=row.gender_preference,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def booking_to_entity(row: BookingModel) -> Booking:
    return Booking(
        id=row.id,
        ride_id=row.ride_id,
        user_id=row.user_id,
        driver_id=row.driver_id,
        seats=row.seats,
        total_price=row.total_price,
        status=BookingStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def user_to_entity(row: UserModel) -> UserProfile:
    return UserProfile(
        uid=row.uid,
        display_name=row.display_name,
        email=row.email,
        gender=row.gender,
        rides_offered=row.rides_offered,
        rides_joined=row.rides_joined,
        total_savings=row.total_savings,
        co2_saved=row.co2_saved,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ── Repositories ──────────────────────────────────────────────────────


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ride: Ride) -> Ride:
        now = utcnow()
        row = RideModel(
            driver_id=ride.driver_id,
            pickup=ride.pickup.label,
            pickup_lat=ride.pickup.latitude,
            pickup_lng=ride.pickup.longitude,
            destination=ride.destination.label,
            destination_lat=ride.destination.latitude,
            destination_lng=ride.destination.longitude,
            date=ride.date,
            time=ride.time,
            total_seats=ride.total_seats,
            available_seats=ride.available_seats,
            price=ride.price,
            status=ride.status,
            description=ride.description,
            gender_preference=ride.gender_preference,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        await self.session.flush()
        return ride_to_entity(row)

    async def get_for_update(self, ride_id: str) -> Optional[RideModel]:
        """Fresh read of the row inside the current transaction."""
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.id == ride_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, ride_id: str) -> Optional[Ride]:
        row = await self.session.get(RideModel, ride_id)
        return ride_to_entity(row) if row else None

    def apply(self, row: RideModel, ride: Ride) -> None:
        """Copy the mutable fields of *ride* back onto its row."""
        row.available_seats = ride.available_seats
        row.status = ride.status
        row.updated_at = utcnow()

    async def list_upcoming(self, today: date, limit: int) -> list[Ride]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.status == RideStatus.UPCOMING, RideModel.date >= today)
            .order_by(RideModel.date.asc(), RideModel.time.asc())
            .limit(limit)
        )
        return [ride_to_entity(r) for r in result.scalars().all()]

    async def list_by_driver(self, driver_id: str) -> list[Ride]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.driver_id == driver_id)
            .order_by(RideModel.date.desc(), RideModel.time.desc())
        )
        return [ride_to_entity(r) for r in result.scalars().all()]


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: Booking) -> BookingModel:
        now = utcnow()
        row = BookingModel(
            ride_id=booking.ride_id,
            user_id=booking.user_id,
            driver_id=booking.driver_id,
            seats=booking.seats,
            total_price=booking.total_price,
            status=booking.status,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        return row

    async def get_for_update(self, booking_id: str) -> Optional[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.id == booking_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, booking_id: str) -> Optional[Booking]:
        row = await self.session.get(BookingModel, booking_id)
        return booking_to_entity(row) if row else None

    def apply(self, row: BookingModel, booking: Booking) -> None:
        row.status = booking.status
        row.updated_at = utcnow()

    async def list_by_user(self, user_id: str) -> list[Booking]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.user_id == user_id)
            .order_by(BookingModel.created_at.desc())
        )
        return [booking_to_entity(r) for r in result.scalars().all()]

    async def list_by_ride(self, ride_id: str) -> list[Booking]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.ride_id == ride_id)
            .order_by(BookingModel.created_at.asc())
        )
        return [booking_to_entity(r) for r in result.scalars().all()]

    async def list_for_update(
        self, ride_id: str, statuses: Iterable[BookingStatus]
    ) -> list[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(
                BookingModel.ride_id == ride_id,
                BookingModel.status.in_(list(statuses)),
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def reserved_seats(self, ride_id: str) -> int:
        """Seats held by confirmed or completed bookings of *ride_id*."""
        result = await self.session.execute(
            select(func.coalesce(func.sum(BookingModel.seats), 0)).where(
                BookingModel.ride_id == ride_id,
                BookingModel.status.in_(list(SEAT_HOLDING_STATUSES)),
            )
        )
        return int(result.scalar() or 0)


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, uid: str) -> Optional[UserProfile]:
        row = await self.session.get(UserModel, uid)
        return user_to_entity(row) if row else None

    async def upsert(
        self, uid: str, *, display_name: str = "", email: str = "", gender: str = ""
    ) -> UserProfile:
        """Create the profile or refresh its identity fields, keeping stats."""
        now = utcnow()
        row = await self.session.get(UserModel, uid)
        if row is None:
            row = UserModel(
                uid=uid,
                display_name=display_name,
                email=email,
                gender=gender,
                rides_offered=0,
                rides_joined=0,
                total_savings=0.0,
                co2_saved=0.0,
                created_at=now,
                updated_at=now,
            )
            self.session.add(row)
        else:
            row.display_name = display_name or row.display_name
            row.email = email or row.email
            row.gender = gender or row.gender
            row.updated_at = now
        await self.session.flush()
        return user_to_entity(row)

    async def increment_stats(self, uid: str, delta: StatsDelta) -> bool:
        """Apply *delta* with database-side arithmetic, floored at zero.

        Returns False if the user has no profile row.
        """
        values = {"updated_at": utcnow()}
        for column_name in ("rides_offered", "rides_joined", "total_savings", "co2_saved"):
            amount = getattr(delta, column_name)
            if not amount:
                continue
            column = getattr(UserModel, column_name)
            values[column_name] = case(
                (column + amount < 0, 0), else_=column + amount
            )
        result = await self.session.execute(
            update(UserModel)
            .where(UserModel.uid == uid)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
