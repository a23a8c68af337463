"""
Ride endpoints
==============

POST  /api/v1/rides                     -- offer a ride (201)
GET   /api/v1/rides/upcoming            -- bookable upcoming rides
GET   /api/v1/rides/{ride_id}           -- ride snapshot
GET   /api/v1/rides/{ride_id}/bookings  -- bookings on a ride (oldest first)
PATCH /api/v1/rides/{ride_id}/cancel    -- cancel ride, cascade to bookings
PATCH /api/v1/rides/{ride_id}/complete  -- complete ride and its bookings
GET   /api/v1/drivers/{driver_id}/rides -- rides offered by a driver
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from src.api.dependencies import get_inventory, get_ledger
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import BookingResponse, RideCreateRequest, RideResponse
from src.domain.entities import Location
from src.domain.enums import GenderPreference
from src.domain.validation import RideSpec
from src.services.inventory import RideInventory
from src.services.ledger import BookingLedger

router = APIRouter(tags=["rides"])


@router.post(
    "/rides",
    status_code=201,
    response_model=RideResponse,
    summary="Offer a ride",
)
@limiter.limit(RATE_LIMIT)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    inventory: RideInventory = Depends(get_inventory),
):
    spec = RideSpec(
        pickup=Location(body.pickup.lat, body.pickup.lng, body.pickup.label),
        destination=Location(
            body.destination.lat, body.destination.lng, body.destination.label
        ),
        date=body.date,
        time=body.time,
        total_seats=body.total_seats,
        price=body.price,
        description=body.description,
        gender_preference=body.gender_preference,
    )
    ride = await inventory.create_ride(body.driver_id, spec)
    return RideResponse.from_entity(ride)


@router.get(
    "/rides/upcoming",
    response_model=list[RideResponse],
    summary="List upcoming rides with free seats",
    description=(
        "Rides are fetched by date, then rides without free seats are "
        "dropped, so fewer than `limit` rides may be returned."
    ),
)
@limiter.limit(RATE_LIMIT)
async def list_upcoming_rides(
    request: Request,
    limit: Optional[int] = Query(None, ge=1, le=100),
    gender: Optional[GenderPreference] = Query(None),
    inventory: RideInventory = Depends(get_inventory),
):
    rides = await inventory.query_upcoming(limit, gender)
    return [RideResponse.from_entity(r) for r in rides]


@router.get(
    "/rides/{ride_id}",
    response_model=RideResponse,
    summary="Get a ride",
)
@limiter.limit(RATE_LIMIT)
async def get_ride(
    request: Request,
    ride_id: str,
    inventory: RideInventory = Depends(get_inventory),
):
    ride = await inventory.require_ride(ride_id)
    return RideResponse.from_entity(ride)


@router.get(
    "/rides/{ride_id}/bookings",
    response_model=list[BookingResponse],
    summary="List bookings on a ride",
)
@limiter.limit(RATE_LIMIT)
async def list_ride_bookings(
    request: Request,
    ride_id: str,
    inventory: RideInventory = Depends(get_inventory),
    ledger: BookingLedger = Depends(get_ledger),
):
    await inventory.require_ride(ride_id)
    bookings = await ledger.query_by_ride(ride_id)
    return [BookingResponse.from_entity(b) for b in bookings]


@router.patch(
    "/rides/{ride_id}/cancel",
    response_model=RideResponse,
    summary="Cancel a ride",
    description=(
        "Transitions an upcoming ride to cancelled. Every confirmed booking "
        "on it is cancelled in the same transaction and its seats returned."
    ),
)
@limiter.limit(RATE_LIMIT)
async def cancel_ride(
    request: Request,
    ride_id: str,
    inventory: RideInventory = Depends(get_inventory),
):
    ride = await inventory.cancel_ride(ride_id)
    return RideResponse.from_entity(ride)


@router.patch(
    "/rides/{ride_id}/complete",
    response_model=RideResponse,
    summary="Complete a ride",
)
@limiter.limit(RATE_LIMIT)
async def complete_ride(
    request: Request,
    ride_id: str,
    inventory: RideInventory = Depends(get_inventory),
):
    ride = await inventory.complete_ride(ride_id)
    return RideResponse.from_entity(ride)


@router.get(
    "/drivers/{driver_id}/rides",
    response_model=list[RideResponse],
    summary="List rides offered by a driver (newest date first)",
)
@limiter.limit(RATE_LIMIT)
async def list_driver_rides(
    request: Request,
    driver_id: str,
    inventory: RideInventory = Depends(get_inventory),
):
    rides = await inventory.query_by_driver(driver_id)
    return [RideResponse.from_entity(r) for r in rides]
