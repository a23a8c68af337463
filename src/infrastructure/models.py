"""
SQLAlchemy ORM models.

Tables
------
* ``users``     -- profiles with aggregate ride stats
* ``rides``     -- driver-published trips with a fixed seat inventory
* ``bookings``  -- rider reservations against a ride

Optimistic concurrency
----------------------
``rides`` and ``bookings`` carry a ``version`` column registered as the
mapper's ``version_id_col``.  Every UPDATE is issued as
``... WHERE id = :id AND version = :version_read``; if another transaction
committed in between, no row matches and SQLAlchemy raises
``StaleDataError`` which the transaction runner turns into a retry.

Indexes
-------
* **B-Tree** on ``rides(status, date)`` for the upcoming-rides query,
  ``rides.driver_id``, ``bookings.ride_id`` and ``bookings.user_id``.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from .database import Base
from src.domain.enums import BookingStatus, GenderPreference, RideStatus


def _new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    # store the lowercase values, not the member names
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=20,
    )


class UserModel(Base):
    __tablename__ = "users"

    uid = Column(String(128), primary_key=True)
    display_name = Column(String(120), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    gender = Column(String(20), nullable=False, default="")
    rides_offered = Column(Integer, nullable=False, default=0)
    rides_joined = Column(Integer, nullable=False, default=0)
    total_savings = Column(Float, nullable=False, default=0.0)
    co2_saved = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(String(32), primary_key=True, default=_new_id)
    driver_id = Column(String(128), nullable=False)

    pickup = Column(String(255), nullable=False)
    pickup_lat = Column(Float, nullable=False)
    pickup_lng = Column(Float, nullable=False)
    destination = Column(String(255), nullable=False)
    destination_lat = Column(Float, nullable=False)
    destination_lng = Column(Float, nullable=False)

    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)  # HH:MM at the deployment offset

    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    status = Column(
        _enum(RideStatus, "ridestatus"), default=RideStatus.UPCOMING, nullable=False
    )
    description = Column(Text, nullable=True)
    gender_preference = Column(
        _enum(GenderPreference, "genderpreference"),
        default=GenderPreference.ALL,
        nullable=False,
    )
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("total_seats BETWEEN 1 AND 6", name="ck_rides_total_seats"),
        CheckConstraint(
            "available_seats >= 0 AND available_seats <= total_seats",
            name="ck_rides_available_seats",
        ),
        CheckConstraint("price > 0", name="ck_rides_price"),
        Index("idx_rides_status_date", "status", "date"),
        Index("idx_rides_driver", "driver_id"),
    )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(String(32), primary_key=True, default=_new_id)
    ride_id = Column(String(32), ForeignKey("rides.id"), nullable=False)
    user_id = Column(String(128), nullable=False)
    driver_id = Column(String(128), nullable=False)  # snapshot taken at booking time
    seats = Column(Integer, nullable=False, default=1)
    total_price = Column(Float, nullable=False)
    status = Column(
        _enum(BookingStatus, "bookingstatus"),
        default=BookingStatus.CONFIRMED,
        nullable=False,
    )
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("seats >= 1", name="ck_bookings_seats"),
        Index("idx_bookings_ride", "ride_id"),
        Index("idx_bookings_user", "user_id"),
    )
