"""
Integration tests for the REST API endpoints.

Runs the real app factory against the per-test SQLite database; the
wall clock is real here, so rides are published a couple of days ahead.
"""

from datetime import date, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.api.app import create_app
from src.api.middleware import limiter


@pytest.fixture
def app(session_factory):
    limiter.reset()
    return create_app(session_factory)


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await app.state.hooks.drain()


def ride_payload(**overrides) -> dict:
    payload = {
        "driver_id": "driver-1",
        "pickup": {"label": "Campus Main Gate", "lat": 31.4697, "lng": 74.4098},
        "destination": {"label": "Liberty Market", "lat": 31.5204, "lng": 74.3587},
        "date": (date.today() + timedelta(days=2)).isoformat(),
        "time": "08:30",
        "total_seats": 2,
        "price": 150.0,
    }
    payload.update(overrides)
    return payload


async def publish(client, **overrides) -> dict:
    resp = await client.post("/api/v1/rides", json=ride_payload(**overrides))
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/api/v1/admin/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestRides:
    @pytest.mark.asyncio
    async def test_create_ride(self, client):
        data = await publish(client, gender_preference="female_only")
        assert data["status"] == "upcoming"
        assert data["available_seats"] == data["total_seats"] == 2
        assert data["pickup"]["label"] == "Campus Main Gate"
        assert data["gender_preference"] == "female_only"

    @pytest.mark.asyncio
    async def test_schema_rejects_too_many_seats(self, client):
        resp = await client.post("/api/v1/rides", json=ride_payload(total_seats=7))
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_past_date_is_a_typed_validation_failure(self, client):
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        resp = await client.post("/api/v1/rides", json=ride_payload(date=yesterday))
        assert resp.status_code == 422
        assert resp.json()["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_get_ride_not_found(self, client):
        resp = await client.get("/api/v1/rides/does-not-exist")
        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"

    @pytest.mark.asyncio
    async def test_upcoming_and_driver_listing(self, client):
        ride = await publish(client)
        await publish(client, driver_id="driver-2", time="12:00")

        upcoming = await client.get("/api/v1/rides/upcoming", params={"limit": 5})
        assert upcoming.status_code == 200
        assert len(upcoming.json()) == 2

        mine = await client.get("/api/v1/drivers/driver-1/rides")
        assert [r["id"] for r in mine.json()] == [ride["id"]]

    @pytest.mark.asyncio
    async def test_cancel_ride_cascades(self, client):
        ride = await publish(client)
        booking = await client.post(
            "/api/v1/bookings", json={"ride_id": ride["id"], "rider_id": "rider-1"}
        )
        assert booking.status_code == 201

        resp = await client.patch(f"/api/v1/rides/{ride['id']}/cancel")
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"
        assert resp.json()["available_seats"] == 2

        listed = await client.get(f"/api/v1/rides/{ride['id']}/bookings")
        assert [b["status"] for b in listed.json()] == ["cancelled"]

        again = await client.patch(f"/api/v1/rides/{ride['id']}/complete")
        assert again.status_code == 409
        assert again.json()["code"] == "invalid_transition"


class TestBookings:
    @pytest.mark.asyncio
    async def test_book_until_full(self, client):
        ride = await publish(client, total_seats=2)

        first = await client.post(
            "/api/v1/bookings", json={"ride_id": ride["id"], "rider_id": "rider-1", "seats": 2}
        )
        assert first.status_code == 201
        assert first.json()["status"] == "confirmed"
        assert first.json()["total_price"] == 300.0

        full = await client.post(
            "/api/v1/bookings", json={"ride_id": ride["id"], "rider_id": "rider-2"}
        )
        assert full.status_code == 409
        assert full.json()["code"] == "insufficient_capacity"

        snapshot = await client.get(f"/api/v1/rides/{ride['id']}")
        assert snapshot.json()["available_seats"] == 0

    @pytest.mark.asyncio
    async def test_booking_unknown_ride(self, client):
        resp = await client.post(
            "/api/v1/bookings", json={"ride_id": "nope", "rider_id": "rider-1"}
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self, client):
        ride = await publish(client, total_seats=2)
        created = await client.post(
            "/api/v1/bookings", json={"ride_id": ride["id"], "rider_id": "rider-1", "seats": 2}
        )
        booking_id = created.json()["id"]

        for _ in range(2):
            resp = await client.patch(
                f"/api/v1/bookings/{booking_id}/cancel", json={"ride_id": ride["id"]}
            )
            assert resp.status_code == 200
            assert resp.json()["status"] == "cancelled"

        audit = await client.get(f"/api/v1/admin/rides/{ride['id']}/seat-audit")
        assert audit.json() == {
            "ride_id": ride["id"],
            "total_seats": 2,
            "available_seats": 2,
            "reserved_seats": 0,
            "balanced": True,
        }

    @pytest.mark.asyncio
    async def test_cancel_without_body(self, client):
        ride = await publish(client)
        created = await client.post(
            "/api/v1/bookings", json={"ride_id": ride["id"], "rider_id": "rider-1"}
        )
        resp = await client.patch(f"/api/v1/bookings/{created.json()['id']}/cancel")
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_get_and_list_bookings(self, client):
        ride = await publish(client)
        created = await client.post(
            "/api/v1/bookings", json={"ride_id": ride["id"], "rider_id": "rider-1"}
        )
        booking_id = created.json()["id"]

        fetched = await client.get(f"/api/v1/bookings/{booking_id}")
        assert fetched.status_code == 200
        assert fetched.json()["ride_id"] == ride["id"]

        listed = await client.get("/api/v1/users/rider-1/bookings")
        assert [b["id"] for b in listed.json()] == [booking_id]

        missing = await client.get("/api/v1/bookings/nope")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_completed_booking_cannot_be_cancelled(self, client):
        ride = await publish(client)
        created = await client.post(
            "/api/v1/bookings", json={"ride_id": ride["id"], "rider_id": "rider-1"}
        )
        booking_id = created.json()["id"]

        done = await client.patch(f"/api/v1/bookings/{booking_id}/complete")
        assert done.json()["status"] == "completed"

        resp = await client.patch(f"/api/v1/bookings/{booking_id}/cancel")
        assert resp.status_code == 409
        assert resp.json()["code"] == "invalid_transition"


class TestUsers:
    @pytest.mark.asyncio
    async def test_profile_stats_follow_bookings(self, app, client):
        resp = await client.put("/api/v1/users/rider-1", json={"display_name": "Sara"})
        assert resp.status_code == 200
        assert resp.json()["rides_joined"] == 0

        ride = await publish(client, price=120.0)
        await client.post(
            "/api/v1/bookings", json={"ride_id": ride["id"], "rider_id": "rider-1"}
        )
        await app.state.hooks.drain()

        profile = await client.get("/api/v1/users/rider-1")
        assert profile.json()["rides_joined"] == 1
        assert profile.json()["total_savings"] == 120.0

    @pytest.mark.asyncio
    async def test_unknown_profile(self, client):
        resp = await client.get("/api/v1/users/ghost")
        assert resp.status_code == 404
