"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from src.domain.entities import Booking, Ride
from src.domain.enums import BookingStatus, GenderPreference, RideStatus


# ── Requests ──────────────────────────────────────────────────────────


class PlaceIn(BaseModel):
    label: str = Field(..., min_length=1, max_length=255)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class RideCreateRequest(BaseModel):
    driver_id: str = Field(..., min_length=1, max_length=128)
    pickup: PlaceIn
    destination: PlaceIn
    date: dt.date
    time: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$", examples=["08:30"])
    total_seats: int = Field(..., ge=1, le=6)
    price: float = Field(..., gt=0, description="Price per seat")
    description: Optional[str] = Field(None, max_length=500)
    gender_preference: GenderPreference = GenderPreference.ALL


class BookingCreateRequest(BaseModel):
    ride_id: str
    rider_id: str = Field(..., min_length=1, max_length=128)
    seats: int = Field(1, ge=1, le=6)
    driver_id: Optional[str] = Field(
        None,
        description="Optional; must match the ride's driver when given.",
    )


class BookingCancelRequest(BaseModel):
    ride_id: Optional[str] = None


class UserUpsertRequest(BaseModel):
    display_name: str = Field("", max_length=120)
    email: str = Field("", max_length=255)
    gender: str = Field("", max_length=20)


# ── Responses ─────────────────────────────────────────────────────────


class PlaceOut(BaseModel):
    label: str
    lat: float
    lng: float


class RideResponse(BaseModel):
    id: str
    driver_id: str
    pickup: PlaceOut
    destination: PlaceOut
    date: dt.date
    time: str
    total_seats: int
    available_seats: int
    price: float
    status: RideStatus
    description: Optional[str] = None
    gender_preference: GenderPreference
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def from_entity(cls, ride: Ride) -> "RideResponse":
        return cls(
            id=ride.id,
            driver_id=ride.driver_id,
            pickup=PlaceOut(
                label=ride.pickup.label, lat=ride.pickup.latitude, lng=ride.pickup.longitude
            ),
            destination=PlaceOut(
                label=ride.destination.label,
                lat=ride.destination.latitude,
                lng=ride.destination.longitude,
            ),
            date=ride.date,
            time=ride.time,
            total_seats=ride.total_seats,
            available_seats=ride.available_seats,
            price=ride.price,
            status=ride.status,
            description=ride.description,
            gender_preference=ride.gender_preference,
            created_at=ride.created_at,
            updated_at=ride.updated_at,
        )


class BookingResponse(BaseModel):
    id: str
    ride_id: str
    user_id: str
    driver_id: str
    seats: int
    total_price: float
    status: BookingStatus
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_entity(cls, booking: Booking) -> "BookingResponse":
        return cls.model_validate(booking)


class UserResponse(BaseModel):
    uid: str
    display_name: str
    email: str
    gender: str
    rides_offered: int
    rides_joined: int
    total_savings: float
    co2_saved: float

    model_config = {"from_attributes": True}


class SeatAuditResponse(BaseModel):
    ride_id: str
    total_seats: int
    available_seats: int
    reserved_seats: int
    balanced: bool

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
    code: str
