"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 8 sample profiles (4 drivers, 4 riders)
  - 6 upcoming rides from campus over the next few days
  - a handful of bookings, one of them cancelled

Everything goes through the inventory manager and booking ledger, so the
seeded data satisfies the same seat invariants as live traffic.
"""

import asyncio
from datetime import timedelta

from sqlalchemy import func, select

from src.config import settings
from src.domain.entities import Location
from src.domain.enums import GenderPreference
from src.domain.validation import RideSpec, local_now
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.models import UserModel
from src.services.hooks import PostCommitHooks
from src.services.inventory import RideInventory
from src.services.ledger import BookingLedger
from src.services.stats import StatsAccumulator

CAMPUS = Location(31.4697, 74.4098, "LUMS Main Gate")

USERS = [
    {"uid": "drv-ayesha", "display_name": "Ayesha Khan", "email": "ayesha@example.edu", "gender": "female"},
    {"uid": "drv-bilal", "display_name": "Bilal Ahmed", "email": "bilal@example.edu", "gender": "male"},
    {"uid": "drv-hina", "display_name": "Hina Raza", "email": "hina@example.edu", "gender": "female"},
    {"uid": "drv-omar", "display_name": "Omar Farooq", "email": "omar@example.edu", "gender": "male"},
    {"uid": "rdr-sara", "display_name": "Sara Malik", "email": "sara@example.edu", "gender": "female"},
    {"uid": "rdr-usman", "display_name": "Usman Tariq", "email": "usman@example.edu", "gender": "male"},
    {"uid": "rdr-zainab", "display_name": "Zainab Ali", "email": "zainab@example.edu", "gender": "female"},
    {"uid": "rdr-hamza", "display_name": "Hamza Iqbal", "email": "hamza@example.edu", "gender": "male"},
]

RIDES = [
    # (driver, destination, days ahead, time, seats, price, preference)
    ("drv-ayesha", Location(31.5204, 74.3587, "Liberty Market"), 1, "08:30", 3, 250.0, GenderPreference.FEMALE_ONLY),
    ("drv-bilal", Location(31.5497, 74.3436, "Lahore Railway Station"), 1, "17:15", 4, 300.0, GenderPreference.ALL),
    ("drv-hina", Location(31.4805, 74.3239, "Johar Town"), 2, "09:00", 2, 200.0, GenderPreference.ALL),
    ("drv-omar", Location(31.5216, 74.4036, "Allama Iqbal Airport"), 2, "06:45", 3, 450.0, GenderPreference.ALL),
    ("drv-bilal", Location(31.5925, 74.3095, "Badshahi Mosque"), 3, "15:00", 4, 350.0, GenderPreference.MALE_ONLY),
    ("drv-ayesha", Location(31.4504, 74.2783, "Thokar Niaz Baig"), 4, "07:30", 1, 180.0, GenderPreference.ALL),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        count = (await session.execute(select(func.count()).select_from(UserModel))).scalar()
        if count:
            print("Database already seeded. Skipping.")
            return

    hooks = PostCommitHooks()
    stats = StatsAccumulator(async_session_factory)
    inventory = RideInventory(async_session_factory, stats=stats, hooks=hooks)
    ledger = BookingLedger(async_session_factory, stats=stats, hooks=hooks)

    # ── Users ─────────────────────────────────────────────────────────
    for u in USERS:
        await stats.create_or_update_user(
            u["uid"], display_name=u["display_name"], email=u["email"], gender=u["gender"]
        )
    print(f"  Created {len(USERS)} users")

    # ── Rides ─────────────────────────────────────────────────────────
    today = local_now(settings.utc_offset_hours).date()
    rides = []
    for driver, destination, days, time_str, seats, price, preference in RIDES:
        ride = await inventory.create_ride(
            driver,
            RideSpec(
                pickup=CAMPUS,
                destination=destination,
                date=today + timedelta(days=days),
                time=time_str,
                total_seats=seats,
                price=price,
                description=f"Leaving from the main gate, heading to {destination.label}.",
                gender_preference=preference,
            ),
        )
        rides.append(ride)
    print(f"  Created {len(rides)} rides")

    # ── Bookings ──────────────────────────────────────────────────────
    bookings = [
        await ledger.create_booking(rides[0].id, "rdr-sara"),
        await ledger.create_booking(rides[0].id, "rdr-zainab"),
        await ledger.create_booking(rides[1].id, "rdr-usman", seats=2),
        await ledger.create_booking(rides[3].id, "rdr-hamza"),
        await ledger.create_booking(rides[5].id, "rdr-sara"),
    ]
    await ledger.cancel_booking(bookings[3].id)
    print(f"  Created {len(bookings)} bookings (1 cancelled)")

    await hooks.drain()
    print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
