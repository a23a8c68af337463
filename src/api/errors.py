"""
Exception handlers: turn domain errors into typed JSON failures.

Business-rule rejections (capacity, lifecycle, validation, not found)
are expected outcomes and are logged at INFO/WARNING; only genuinely
unexpected exceptions reach the 500 handler.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.domain.errors import BookingCoreError, ConflictError, StoreUnavailableError

logger = logging.getLogger(__name__)


async def booking_core_error_handler(request: Request, exc: BookingCoreError) -> JSONResponse:
    if isinstance(exc, StoreUnavailableError):
        logger.error("%s %s: %s", request.method, request.url.path, exc.message)
    elif isinstance(exc, ConflictError):
        logger.warning("%s %s: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)

    headers = {"Retry-After": "1"} if isinstance(exc, ConflictError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "internal_error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingCoreError, booking_core_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
