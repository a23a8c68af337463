"""FastAPI dependency injection helpers."""

from fastapi import Request

from src.services.inventory import RideInventory
from src.services.ledger import BookingLedger
from src.services.stats import StatsAccumulator


def get_inventory(request: Request) -> RideInventory:
    return request.app.state.inventory


def get_ledger(request: Request) -> BookingLedger:
    return request.app.state.ledger


def get_stats(request: Request) -> StatsAccumulator:
    return request.app.state.stats
