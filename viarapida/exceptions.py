# viarapida/exceptions.py
"""Errors raised by the booking core.

Every failure that leaves a service is one of these, so callers can branch
on the class (or on ``code``) instead of parsing messages.
"""

from typing import Iterable, Optional


class BookingError(Exception):
    code = "booking_error"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class Unauthenticated(BookingError):
    code = "unauthenticated"
    status_code = 401

    def __init__(self, message: str = "User is not authenticated"):
        super().__init__(message)


class InvalidPassengerCount(BookingError):
    code = "invalid_passenger_count"


class InvalidPassengerData(BookingError):
    code = "invalid_passenger_data"

    def __init__(self, index: int, field: str, message: str):
        self.index = index
        self.field = field
        super().__init__(f"Passenger {index + 1}: {message}")


class InvalidPrice(BookingError):
    code = "invalid_price"


class InvalidSearch(BookingError):
    code = "invalid_search"


class NotFound(BookingError):
    code = "not_found"
    status_code = 404


class CancellationWindowExpired(BookingError):
    code = "cancellation_window_expired"
    status_code = 409

    def __init__(self, cutoff_hours: int, hours_remaining: int):
        self.cutoff_hours = cutoff_hours
        self.hours_remaining = hours_remaining
        super().__init__(
            f"Reservations can only be cancelled at least {cutoff_hours} hours before departure"
        )


class ReservationNotActive(BookingError):
    code = "reservation_not_active"
    status_code = 409


class SeatAlreadyTaken(BookingError):
    code = "seat_already_taken"
    status_code = 409

    def __init__(self, seats: Iterable[str]):
        self.seats = sorted(set(seats))
        super().__init__(f"Seats already taken: {', '.join(self.seats)}")


class InsufficientCapacity(BookingError):
    code = "insufficient_capacity"
    status_code = 409

    def __init__(self, requested: int, available: Optional[int] = None):
        self.requested = requested
        self.available = available
        detail = f"Not enough seats available for {requested} passenger(s)"
        if available is not None:
            detail += f" ({available} left)"
        super().__init__(detail)


class TripNotBookable(BookingError):
    code = "trip_not_bookable"
    status_code = 409


class DuplicateRecord(BookingError):
    code = "duplicate_record"
    status_code = 409


class StoreUnavailable(BookingError):
    code = "store_unavailable"
    status_code = 503


class LookupFailure(StoreUnavailable):
    code = "lookup_failure"
