"""Booking models needed by the manage-link and payment routes."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"
    COMPLETED = "completed"


class Booking(BaseModel):
    """Booking joined with the client's email address."""

    booking_id: str
    practitioner_id: str
    client_id: str
    client_email: Optional[str] = None
    client_name: Optional[str] = None
    status: BookingStatus
    start_time: datetime
    end_time: datetime

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def is_closed(self) -> bool:
        """Return ``True`` when the booking can no longer be changed."""
        return self.status in {BookingStatus.CANCELED, BookingStatus.COMPLETED}
