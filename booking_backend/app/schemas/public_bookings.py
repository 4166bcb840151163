"""API schemas for the public manage-link endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..bookings import BookingStatus
from ..manage_links import ManageAction


class PublicCancelRequest(BaseModel):
    sig: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class PublicCancelResponse(BaseModel):
    success: bool = True

    model_config = ConfigDict(populate_by_name=True)


class BookingContextResponse(BaseModel):
    practitioner_id: str = Field(alias="userId")
    current_start: datetime = Field(alias="currentStart")
    current_end: datetime = Field(alias="currentEnd")
    status: BookingStatus
    action: ManageAction

    model_config = ConfigDict(populate_by_name=True)


class ResendEmailResponse(BaseModel):
    success: bool = True

    model_config = ConfigDict(populate_by_name=True)
