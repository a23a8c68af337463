"""
Input validation for ride offers and booking requests.

All checks run before any store access.  Dates and times are interpreted
in the deployment's fixed UTC offset (naive values, no DST).
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from .entities import Location
from .enums import GenderPreference
from .errors import ValidationError

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

MAX_DESCRIPTION_LENGTH = 500


@dataclass
class RideSpec:
    """Everything a driver supplies when offering a ride."""

    pickup: Location
    destination: Location
    date: date
    time: str
    total_seats: int
    price: float
    description: Optional[str] = None
    gender_preference: GenderPreference = field(default=GenderPreference.ALL)


def local_now(utc_offset_hours: int) -> datetime:
    """Current wall-clock time at the deployment offset, as a naive datetime."""
    tz = timezone(timedelta(hours=utc_offset_hours))
    return datetime.now(tz).replace(tzinfo=None)


def parse_departure_time(value: str) -> tuple[int, int]:
    match = _TIME_RE.match(value or "")
    if not match:
        raise ValidationError(
            f"Departure time must be HH:MM (24h), got {value!r}", field="time"
        )
    return int(match.group(1)), int(match.group(2))


def validate_location(location: Location, field_name: str) -> None:
    lat, lng = location.latitude, location.longitude
    if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in (lat, lng)):
        raise ValidationError(f"{field_name} coordinates must be numbers", field=field_name)
    if not -90 <= lat <= 90 or not -180 <= lng <= 180:
        raise ValidationError(f"{field_name} coordinates out of range", field=field_name)
    if not location.label or not location.label.strip():
        raise ValidationError(f"{field_name} label is required", field=field_name)


def validate_ride_spec(
    spec: RideSpec,
    now: datetime,
    *,
    max_seats: int = 6,
    min_lead_minutes: int = 10,
) -> None:
    """Raise ``ValidationError`` if *spec* cannot be published at *now*."""
    if isinstance(spec.total_seats, bool) or not isinstance(spec.total_seats, int):
        raise ValidationError("Seats must be an integer", field="total_seats")
    if not 1 <= spec.total_seats <= max_seats:
        raise ValidationError(
            f"Seats must be between 1 and {max_seats}", field="total_seats"
        )
    if not isinstance(spec.price, (int, float)) or not math.isfinite(spec.price) or spec.price <= 0:
        raise ValidationError("Price must be a positive number", field="price")

    validate_location(spec.pickup, "pickup")
    validate_location(spec.destination, "destination")

    if spec.description is not None and len(spec.description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters",
            field="description",
        )

    hours, minutes = parse_departure_time(spec.time)
    if spec.date < now.date():
        raise ValidationError("Ride date cannot be in the past", field="date")
    departure = datetime.combine(spec.date, datetime.min.time()).replace(
        hour=hours, minute=minutes
    )
    if departure - now < timedelta(minutes=min_lead_minutes):
        raise ValidationError(
            f"Departure time must be at least {min_lead_minutes} minutes from now",
            field="time",
        )


def validate_seat_request(seats: int, max_seats: int = 6) -> None:
    if isinstance(seats, bool) or not isinstance(seats, int):
        raise ValidationError("Seats must be an integer", field="seats")
    if not 1 <= seats <= max_seats:
        raise ValidationError(f"Seats must be between 1 and {max_seats}", field="seats")
