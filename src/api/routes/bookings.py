"""
Booking endpoints
=================

POST  /api/v1/bookings                       -- reserve seats (201)
GET   /api/v1/bookings/{booking_id}          -- booking snapshot
PATCH /api/v1/bookings/{booking_id}/cancel   -- release seats (idempotent)
PATCH /api/v1/bookings/{booking_id}/complete -- mark completed
GET   /api/v1/users/{uid}/bookings           -- a rider's bookings (newest first)

Capacity and lifecycle rejections come back as 409 with a ``code`` field;
a 409 with ``code == "conflict"`` is transient and safe to retry.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_ledger
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import (
    BookingCancelRequest,
    BookingCreateRequest,
    BookingResponse,
    ErrorResponse,
)
from src.domain.errors import BookingNotFoundError
from src.services.ledger import BookingLedger

router = APIRouter(tags=["bookings"])


@router.post(
    "/bookings",
    status_code=201,
    response_model=BookingResponse,
    summary="Book seats on a ride",
    responses={
        404: {"model": ErrorResponse, "description": "Ride not found"},
        409: {"model": ErrorResponse, "description": "No seats left, or retryable conflict"},
    },
)
@limiter.limit(RATE_LIMIT)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    ledger: BookingLedger = Depends(get_ledger),
):
    booking = await ledger.create_booking(
        body.ride_id, body.rider_id, seats=body.seats, driver_id=body.driver_id
    )
    return BookingResponse.from_entity(booking)


@router.get(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    summary="Get a booking",
)
@limiter.limit(RATE_LIMIT)
async def get_booking(
    request: Request,
    booking_id: str,
    ledger: BookingLedger = Depends(get_ledger),
):
    booking = await ledger.get_booking(booking_id)
    if booking is None:
        raise BookingNotFoundError(booking_id)
    return BookingResponse.from_entity(booking)


@router.patch(
    "/bookings/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel a booking",
    description=(
        "Returns the booking's seats to the ride if it was confirmed. "
        "Cancelling an already-cancelled booking is a no-op."
    ),
)
@limiter.limit(RATE_LIMIT)
async def cancel_booking(
    request: Request,
    booking_id: str,
    body: Optional[BookingCancelRequest] = None,
    ledger: BookingLedger = Depends(get_ledger),
):
    ride_id = body.ride_id if body else None
    booking = await ledger.cancel_booking(booking_id, ride_id)
    return BookingResponse.from_entity(booking)


@router.patch(
    "/bookings/{booking_id}/complete",
    response_model=BookingResponse,
    summary="Complete a booking",
)
@limiter.limit(RATE_LIMIT)
async def complete_booking(
    request: Request,
    booking_id: str,
    ledger: BookingLedger = Depends(get_ledger),
):
    booking = await ledger.complete_booking(booking_id)
    return BookingResponse.from_entity(booking)


@router.get(
    "/users/{uid}/bookings",
    response_model=list[BookingResponse],
    summary="List a rider's bookings",
)
@limiter.limit(RATE_LIMIT)
async def list_user_bookings(
    request: Request,
    uid: str,
    ledger: BookingLedger = Depends(get_ledger),
):
    bookings = await ledger.query_by_user(uid)
    return [BookingResponse.from_entity(b) for b in bookings]
