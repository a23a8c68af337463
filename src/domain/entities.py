"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Ride`` and ``Booking``: enforces valid lifecycle
  transitions (UPCOMING -> COMPLETED | CANCELLED, CONFIRMED -> COMPLETED |
  CANCELLED).
- ``Ride.reserve_seats`` / ``Ride.release_seats`` encapsulate the seat
  inventory invariant ``0 <= available_seats <= total_seats``.  They are
  only ever called on a ride read inside an optimistic transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional

from .enums import (
    BOOKING_TRANSITIONS,
    RIDE_TRANSITIONS,
    SEAT_HOLDING_STATUSES,
    BookingStatus,
    GenderPreference,
    RideStatus,
)
from .errors import InsufficientCapacityError, InvalidTransitionError, ValidationError


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    label: str = ""


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Ride:
    id: Optional[str] = None
    driver_id: str = ""
    pickup: Location = field(default_factory=lambda: Location(0, 0))
    destination: Location = field(default_factory=lambda: Location(0, 0))
    date: Optional[date] = None
    time: str = "00:00"
    total_seats: int = 1
    available_seats: int = 1
    price: float = 0.0
    status: RideStatus = RideStatus.UPCOMING
    description: Optional[str] = None
    gender_preference: GenderPreference = GenderPreference.ALL
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def reserved_seats(self) -> int:
        return self.total_seats - self.available_seats

    @property
    def departure_at(self) -> Optional[datetime]:
        """Departure as a naive datetime in the deployment's local offset."""
        if self.date is None:
            return None
        hours, minutes = (int(part) for part in self.time.split(":"))
        return datetime.combine(self.date, time(hours, minutes))

    def transition_to(self, new_status: RideStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = RIDE_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition ride from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    def reserve_seats(self, seats: int) -> None:
        """Deduct *seats* from the inventory, all or nothing."""
        if seats < 1:
            raise ValidationError("Seats must be at least 1", field="seats")
        if self.status != RideStatus.UPCOMING:
            raise InvalidTransitionError(
                f"Ride {self.id} is {self.status.value} and cannot be booked"
            )
        if self.available_seats < seats:
            raise InsufficientCapacityError(self.id or "", seats, self.available_seats)
        self.available_seats -= seats

    def release_seats(self, seats: int) -> None:
        """Return *seats* previously deducted by ``reserve_seats``."""
        if self.available_seats + seats > self.total_seats:
            raise InvalidTransitionError(
                f"Releasing {seats} seats would exceed the {self.total_seats} "
                f"seats of ride {self.id}"
            )
        self.available_seats += seats

    def accepts(self, preference: Optional[GenderPreference]) -> bool:
        """Search filter: ``None`` matches everything, open rides match any filter."""
        if preference is None:
            return True
        return (
            self.gender_preference == GenderPreference.ALL
            or self.gender_preference == preference
        )


@dataclass
class Booking:
    id: Optional[str] = None
    ride_id: str = ""
    user_id: str = ""
    driver_id: str = ""
    seats: int = 1
    total_price: float = 0.0
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def holds_seats(self) -> bool:
        return self.status in SEAT_HOLDING_STATUSES

    def transition_to(self, new_status: BookingStatus) -> None:
        allowed = BOOKING_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition booking from {self.status.value} to {new_status.value}"
            )
        self.status = new_status


@dataclass
class UserProfile:
    uid: str
    display_name: str = ""
    email: str = ""
    gender: str = ""
    rides_offered: int = 0
    rides_joined: int = 0
    total_savings: float = 0.0
    co2_saved: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class SeatAudit:
    """Snapshot of a ride's seat conservation check."""

    ride_id: str
    total_seats: int
    available_seats: int
    reserved_seats: int

    @property
    def balanced(self) -> bool:
        return self.available_seats + self.reserved_seats == self.total_seats
