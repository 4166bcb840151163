"""Value objects for signed booking management links."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ManageAction(str, Enum):
    """Actions a booking recipient may perform through an emailed link."""

    RESCHEDULE = "reschedule"
    CANCEL = "cancel"

    @property
    def path_segment(self) -> str:
        return _PATH_SEGMENTS[self]


_PATH_SEGMENTS = {
    ManageAction.RESCHEDULE: "reschedulings",
    ManageAction.CANCEL: "cancellations",
}


class ManageToken(BaseModel):
    """Signature bundled with the inputs it was computed over.

    Tokens are never persisted; validity is re-derived from the shared secret
    every time a link is visited.
    """

    booking_id: str = Field(min_length=1)
    recipient_email: str = Field(min_length=1)
    action: ManageAction
    signature: str

    model_config = ConfigDict(populate_by_name=True, frozen=True)
