"""
Error taxonomy for the ride inventory & booking core.

Every error carries an HTTP-ish ``status_code`` and a stable ``code`` so
the API layer can turn it into a typed failure without a lookup table.

* ``ValidationError``, ``NotFoundError``, ``InsufficientCapacityError``
  and ``InvalidTransitionError`` are terminal for the request.
* ``ConflictError`` is transient: the optimistic check failed and the
  bounded retry inside the transaction runner was exhausted.
* ``StoreUnavailableError`` means the database could not be reached.
"""

from __future__ import annotations


class BookingCoreError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(BookingCoreError):
    status_code = 422
    code = "validation_error"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NotFoundError(BookingCoreError):
    status_code = 404
    code = "not_found"


class RideNotFoundError(NotFoundError):
    def __init__(self, ride_id: str):
        self.ride_id = ride_id
        super().__init__(f"Ride {ride_id} not found")


class BookingNotFoundError(NotFoundError):
    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")


class UserNotFoundError(NotFoundError):
    def __init__(self, uid: str):
        self.uid = uid
        super().__init__(f"User {uid} not found")


class InsufficientCapacityError(BookingCoreError):
    status_code = 409
    code = "insufficient_capacity"

    def __init__(self, ride_id: str, requested: int, available: int):
        self.ride_id = ride_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough seats available on ride {ride_id} "
            f"(requested {requested}, available {available})"
        )


class InvalidTransitionError(BookingCoreError):
    status_code = 409
    code = "invalid_transition"


class ConflictError(BookingCoreError):
    status_code = 409
    code = "conflict"

    def __init__(self, message: str = "Concurrent modification, please retry", attempts: int = 0):
        self.attempts = attempts
        super().__init__(message)


class StoreUnavailableError(BookingCoreError):
    status_code = 503
    code = "store_unavailable"
