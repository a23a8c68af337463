"""
Profile endpoints
=================

PUT /api/v1/users/{uid} -- create or refresh a profile (stats are kept)
GET /api/v1/users/{uid} -- profile with ride stats
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_stats
from src.api.middleware import RATE_LIMIT, limiter
from src.api.schemas import UserResponse, UserUpsertRequest
from src.services.stats import StatsAccumulator

router = APIRouter(prefix="/users", tags=["users"])


@router.put("/{uid}", response_model=UserResponse, summary="Create or update a profile")
@limiter.limit(RATE_LIMIT)
async def upsert_user(
    request: Request,
    uid: str,
    body: UserUpsertRequest,
    stats: StatsAccumulator = Depends(get_stats),
):
    profile = await stats.create_or_update_user(
        uid, display_name=body.display_name, email=body.email, gender=body.gender
    )
    return UserResponse.model_validate(profile)


@router.get("/{uid}", response_model=UserResponse, summary="Get a profile")
@limiter.limit(RATE_LIMIT)
async def get_user(
    request: Request,
    uid: str,
    stats: StatsAccumulator = Depends(get_stats),
):
    return UserResponse.model_validate(await stats.get_user(uid))
