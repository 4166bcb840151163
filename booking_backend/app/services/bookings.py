"""Application wiring for booking lookups."""
from __future__ import annotations

from functools import lru_cache

from ..bookings import Booking, BookingRepository, PostgresBookingRepository


@lru_cache(maxsize=1)
def get_booking_repository() -> BookingRepository:
    return PostgresBookingRepository()


def get_owned_booking(booking_id: str, practitioner_id: str) -> Booking:
    """Return the booking when it belongs to ``practitioner_id``.

    Raises ``LookupError`` for unknown bookings and ``PermissionError`` for
    bookings owned by another practitioner.
    """

    booking = get_booking_repository().get_booking(booking_id)
    if booking is None:
        raise LookupError("Booking not found")
    if booking.practitioner_id != practitioner_id:
        raise PermissionError("Booking belongs to another practitioner")
    return booking


__all__ = ["get_booking_repository", "get_owned_booking"]
