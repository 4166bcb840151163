"""Practitioner routes for booking emails."""
from __future__ import annotations

import os
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, status

from ... import app_context
from ..config import get_app_config
from ..schemas.public_bookings import ResendEmailResponse
from ..services.booking_emails import send_booking_manage_links_email
from ..services.bookings import get_owned_booking
from ..services.manage_links import get_manage_link_signer

_SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")


def _get_current_user(
    session_token: Optional[str] = Cookie(None, alias=_SESSION_COOKIE_NAME),
):
    return app_context.get_current_user(session_token=session_token)


router = APIRouter(prefix="/api/bookings", tags=["bookings"])


@router.post("/{booking_id}/resend-email", response_model=ResendEmailResponse)
def resend_booking_email(
    booking_id: str,
    *,
    current_user=Depends(_get_current_user),
) -> ResendEmailResponse:
    try:
        booking = get_owned_booking(booking_id, str(current_user.id))
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc

    if booking.is_closed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": "invalid_status"})
    if not booking.client_email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": "client_email_missing"})

    try:
        send_booking_manage_links_email(
            get_manage_link_signer(),
            base_url=get_app_config().app_base_url,
            booking_id=booking.booking_id,
            to=booking.client_email,
            client_name=booking.client_name or "",
            practitioner_name=getattr(current_user, "name", None) or "",
            start_time=booking.start_time,
        )
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "email_failed", "details": str(exc)},
        ) from exc
    return ResendEmailResponse()
