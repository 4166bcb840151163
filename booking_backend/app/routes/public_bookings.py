"""Public routes reached through signed manage links (no login)."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from ..bookings import Booking, BookingStatus
from ..manage_links import ManageAction
from ..schemas.public_bookings import BookingContextResponse, PublicCancelRequest, PublicCancelResponse
from ..services.bookings import get_booking_repository
from ..services.manage_links import get_manage_link_signer
from ..services.payments import get_payment_service

logger = logging.getLogger("bookings")

router = APIRouter(prefix="/api/public/bookings", tags=["public-bookings"])


def _error(status_code: int, code: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": code})


def _load_verified_booking(booking_id: str, sig: str, action: ManageAction) -> Booking:
    booking = get_booking_repository().get_booking(booking_id)
    if booking is None:
        raise _error(status.HTTP_404_NOT_FOUND, "not_found")
    if not booking.client_email:
        raise _error(status.HTTP_404_NOT_FOUND, "client_not_found")
    if not get_manage_link_signer().verify(sig, booking_id, booking.client_email, action):
        logger.warning("Rejected %s link for booking %s: invalid signature", action.value, booking_id)
        raise _error(status.HTTP_401_UNAUTHORIZED, "invalid_signature")
    return booking


@router.get("/{booking_id}/context", response_model=BookingContextResponse)
def get_booking_context(
    booking_id: str,
    sig: Optional[str] = Query(None),
    action: str = Query(ManageAction.RESCHEDULE.value),
) -> BookingContextResponse:
    if not sig:
        raise _error(status.HTTP_400_BAD_REQUEST, "missing_params")
    try:
        resolved = ManageAction(action)
    except ValueError as exc:
        raise _error(status.HTTP_400_BAD_REQUEST, "invalid_action") from exc

    booking = _load_verified_booking(booking_id, sig, resolved)
    return BookingContextResponse(
        practitioner_id=booking.practitioner_id,
        current_start=booking.start_time,
        current_end=booking.end_time,
        status=booking.status,
        action=resolved,
    )


@router.post("/{booking_id}/cancel", response_model=PublicCancelResponse)
def cancel_booking(booking_id: str, payload: PublicCancelRequest) -> PublicCancelResponse:
    if not payload.sig:
        raise _error(status.HTTP_400_BAD_REQUEST, "missing_fields")

    booking = _load_verified_booking(booking_id, payload.sig, ManageAction.CANCEL)
    if booking.is_closed:
        raise _error(status.HTTP_400_BAD_REQUEST, "invalid_status")

    if booking.status == BookingStatus.PENDING:
        result = get_payment_service().cancel_payment_for_booking(booking_id)
        if not result.success:
            logger.warning("Payment cancellation failed for booking %s: %s", booking_id, result.error)

    get_booking_repository().update_booking_status(booking_id, BookingStatus.CANCELED)
    logger.info("Booking %s canceled through manage link", booking_id)
    return PublicCancelResponse()
