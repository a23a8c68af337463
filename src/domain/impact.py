"""
Profile impact of a booking.

A joined ride counts as one ride, the fare paid counts as savings versus
travelling alone, and every shared seat saves a fixed amount of CO2.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StatsDelta:
    rides_joined: int = 0
    rides_offered: int = 0
    total_savings: float = 0.0
    co2_saved: float = 0.0

    def __neg__(self) -> "StatsDelta":
        return StatsDelta(
            rides_joined=-self.rides_joined,
            rides_offered=-self.rides_offered,
            total_savings=-self.total_savings,
            co2_saved=-self.co2_saved,
        )


def booking_impact(seats: int, total_price: float, co2_per_seat_kg: float) -> StatsDelta:
    return StatsDelta(
        rides_joined=1,
        total_savings=round(total_price, 2),
        co2_saved=round(co2_per_seat_kg * seats, 3),
    )


RIDE_OFFERED = StatsDelta(rides_offered=1)
