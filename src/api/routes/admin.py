"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health                      -- simple health check
GET /api/v1/admin/rides/{ride_id}/seat-audit  -- seat conservation check
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_inventory
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import HealthResponse, SeatAuditResponse
from src.services.inventory import RideInventory

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/rides/{ride_id}/seat-audit",
    response_model=SeatAuditResponse,
    summary="Check available + reserved seats against total seats",
)
@limiter.limit(RATE_LIMIT)
async def seat_audit(
    request: Request,
    ride_id: str,
    inventory: RideInventory = Depends(get_inventory),
):
    audit = await inventory.seat_audit(ride_id)
    return SeatAuditResponse.model_validate(audit)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
