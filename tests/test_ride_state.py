"""Unit tests for ride / booking entities: state transitions and seat arithmetic."""

import pytest

from src.domain.entities import Booking, Ride, SeatAudit
from src.domain.enums import BookingStatus, GenderPreference, RideStatus
from src.domain.errors import (
    InsufficientCapacityError,
    InvalidTransitionError,
    ValidationError,
)


class TestRideStateMachine:
    def test_initial_status_is_upcoming(self):
        ride = Ride()
        assert ride.status == RideStatus.UPCOMING

    def test_upcoming_to_completed(self):
        ride = Ride()
        ride.transition_to(RideStatus.COMPLETED)
        assert ride.status == RideStatus.COMPLETED

    def test_upcoming_to_cancelled(self):
        ride = Ride()
        ride.transition_to(RideStatus.CANCELLED)
        assert ride.status == RideStatus.CANCELLED

    def test_completed_to_anything_fails(self):
        ride = Ride(status=RideStatus.COMPLETED)
        with pytest.raises(InvalidTransitionError):
            ride.transition_to(RideStatus.CANCELLED)

    def test_cancelled_to_anything_fails(self):
        ride = Ride(status=RideStatus.CANCELLED)
        with pytest.raises(InvalidTransitionError):
            ride.transition_to(RideStatus.UPCOMING)


class TestSeatInventory:
    def test_reserve_decrements(self):
        ride = Ride(id="r1", total_seats=3, available_seats=3)
        ride.reserve_seats(2)
        assert ride.available_seats == 1
        assert ride.reserved_seats == 2

    def test_reserve_exactly_remaining(self):
        ride = Ride(id="r1", total_seats=3, available_seats=1)
        ride.reserve_seats(1)
        assert ride.available_seats == 0

    def test_reserve_more_than_available_is_all_or_nothing(self):
        ride = Ride(id="r1", total_seats=3, available_seats=1)
        with pytest.raises(InsufficientCapacityError) as info:
            ride.reserve_seats(2)
        assert info.value.requested == 2
        assert info.value.available == 1
        assert ride.available_seats == 1

    def test_reserve_zero_seats_rejected(self):
        ride = Ride(id="r1", total_seats=3, available_seats=3)
        with pytest.raises(ValidationError):
            ride.reserve_seats(0)

    def test_reserve_on_cancelled_ride_rejected(self):
        ride = Ride(id="r1", total_seats=3, available_seats=3, status=RideStatus.CANCELLED)
        with pytest.raises(InvalidTransitionError):
            ride.reserve_seats(1)
        assert ride.available_seats == 3

    def test_release_restores(self):
        ride = Ride(id="r1", total_seats=2, available_seats=0)
        ride.release_seats(2)
        assert ride.available_seats == 2

    def test_release_cannot_exceed_total(self):
        ride = Ride(id="r1", total_seats=2, available_seats=2)
        with pytest.raises(InvalidTransitionError):
            ride.release_seats(1)
        assert ride.available_seats == 2


class TestGenderFilter:
    def test_no_filter_matches_everything(self):
        assert Ride(gender_preference=GenderPreference.MALE_ONLY).accepts(None)

    def test_open_ride_matches_any_filter(self):
        assert Ride().accepts(GenderPreference.FEMALE_ONLY)

    def test_restricted_ride_only_matches_its_filter(self):
        ride = Ride(gender_preference=GenderPreference.FEMALE_ONLY)
        assert ride.accepts(GenderPreference.FEMALE_ONLY)
        assert not ride.accepts(GenderPreference.MALE_ONLY)


class TestBookingStateMachine:
    def test_confirmed_holds_seats(self):
        assert Booking(status=BookingStatus.CONFIRMED).holds_seats

    def test_completed_holds_seats(self):
        assert Booking(status=BookingStatus.COMPLETED).holds_seats

    def test_cancelled_does_not_hold_seats(self):
        assert not Booking(status=BookingStatus.CANCELLED).holds_seats

    def test_confirmed_to_cancelled(self):
        booking = Booking()
        booking.transition_to(BookingStatus.CANCELLED)
        assert booking.status == BookingStatus.CANCELLED

    def test_completed_cannot_be_cancelled(self):
        booking = Booking(status=BookingStatus.COMPLETED)
        with pytest.raises(InvalidTransitionError):
            booking.transition_to(BookingStatus.CANCELLED)

    def test_cancelled_cannot_be_completed(self):
        booking = Booking(status=BookingStatus.CANCELLED)
        with pytest.raises(InvalidTransitionError):
            booking.transition_to(BookingStatus.COMPLETED)


def test_seat_audit_balanced():
    assert SeatAudit("r1", total_seats=4, available_seats=1, reserved_seats=3).balanced
    assert not SeatAudit("r1", total_seats=4, available_seats=2, reserved_seats=3).balanced
