"""
FastAPI application factory.

* Wires the inventory manager, booking ledger and stats accumulator onto
  ``app.state`` around a shared session factory.
* Drains in-flight post-commit hooks on shutdown via lifespan events.
* Applies rate-limiting and maps domain errors to typed JSON failures.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.errors import register_exception_handlers
from src.api.middleware import limiter
from src.api.routes import admin, bookings, rides, users
from src.infrastructure.database import async_session_factory
from src.services.hooks import PostCommitHooks
from src.services.inventory import RideInventory
from src.services.ledger import BookingLedger
from src.services.stats import StatsAccumulator

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)


def create_app(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> FastAPI:
    session_factory = session_factory or async_session_factory
    hooks = PostCommitHooks()
    stats = StatsAccumulator(session_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if hooks.pending:
            logger.info("Waiting for %d post-commit hooks", hooks.pending)
        await hooks.drain()

    app = FastAPI(
        title="Campus Rideshare Booking API",
        description=(
            "Drivers publish rides with a fixed number of seats; riders "
            "book and cancel seats.  Seat inventory is guarded by optimistic "
            "transactions so concurrent bookings can never overbook a ride."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.hooks = hooks
    app.state.stats = stats
    app.state.inventory = RideInventory(session_factory, stats=stats, hooks=hooks)
    app.state.ledger = BookingLedger(session_factory, stats=stats, hooks=hooks)

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    # Routers
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(users.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
