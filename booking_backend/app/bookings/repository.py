"""Persistence layer for bookings."""
from __future__ import annotations

from typing import Optional, Protocol

from ..payments.repository import PostgresRepository
from .models import Booking, BookingStatus


class BookingRepository(Protocol):
    """Booking operations required by the public manage-link routes."""

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        ...

    def update_booking_status(self, booking_id: str, status: BookingStatus) -> Optional[Booking]:
        ...


def _row_to_booking(row: dict) -> Booking:
    return Booking(
        booking_id=str(row["id"]),
        practitioner_id=str(row["user_id"]),
        client_id=str(row["client_id"]),
        client_email=row.get("client_email"),
        client_name=row.get("client_name"),
        status=BookingStatus(row["status"]),
        start_time=row["start_time"],
        end_time=row["end_time"],
    )


_SELECT_BOOKING = """
    SELECT b.id, b.user_id, b.client_id, b.status, b.start_time, b.end_time,
           c.email AS client_email, c.name AS client_name
    FROM bookings AS b
    LEFT JOIN clients AS c ON c.id = b.client_id
    WHERE b.id = %s
    LIMIT 1
"""


class PostgresBookingRepository(PostgresRepository):
    """Concrete repository reading bookings from PostgreSQL."""

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._cursor() as cursor:
            cursor.execute(_SELECT_BOOKING, (booking_id,))
            row = cursor.fetchone()
            return _row_to_booking(row) if row else None

    def update_booking_status(self, booking_id: str, status: BookingStatus) -> Optional[Booking]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE bookings
                SET status = %s, updated_at = NOW()
                WHERE id = %s
                """,
                (status.value, booking_id),
            )
            if cursor.rowcount == 0:
                return None
            cursor.execute(_SELECT_BOOKING, (booking_id,))
            row = cursor.fetchone()
            return _row_to_booking(row) if row else None


__all__ = ["BookingRepository", "PostgresBookingRepository"]
