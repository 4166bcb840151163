"""Booking lookups used by manage links and payments."""

from .models import Booking, BookingStatus
from .repository import BookingRepository, PostgresBookingRepository

__all__ = [
    "Booking",
    "BookingRepository",
    "BookingStatus",
    "PostgresBookingRepository",
]
