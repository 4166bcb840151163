"""API routes for consultation payments."""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, status

from ... import app_context
from ..config import get_app_config
from ..payments import CheckoutErrorKind, CheckoutFailure, PaymentOrchestrationService
from ..schemas.payments import (
    CancelPaymentResponse,
    CreateCheckoutRequest,
    CreateCheckoutResponse,
    RefundRequest,
    RefundResponse,
)
from ..services.booking_emails import send_consultation_bill_email
from ..services.bookings import get_owned_booking
from ..services.payments import get_payment_service

logger = logging.getLogger("payments")

_SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")

_STATUS_BY_KIND = {
    CheckoutErrorKind.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    CheckoutErrorKind.ACCOUNT_NOT_FOUND: status.HTTP_400_BAD_REQUEST,
    CheckoutErrorKind.ACCOUNT_NOT_READY: status.HTTP_400_BAD_REQUEST,
}


def _get_current_user(
    session_token: Optional[str] = Cookie(None, alias=_SESSION_COOKIE_NAME),
):
    return app_context.get_current_user(session_token=session_token)


router = APIRouter(prefix="/api/payments", tags=["payments"])


def failure_to_http_exception(failure: CheckoutFailure) -> HTTPException:
    status_code = _STATUS_BY_KIND.get(failure.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        detail: Dict[str, Any] = {
            "error": "Failed to create checkout session",
            "details": failure.detail.get("details", failure.message),
        }
    else:
        detail = {"error": failure.code, "message": failure.message, **failure.detail}
    return HTTPException(status_code=status_code, detail=detail)


def _require_booking(booking_id: str, current_user) -> None:
    try:
        get_owned_booking(booking_id, str(current_user.id))
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc


def _send_bill_email(
    service: PaymentOrchestrationService,
    payload: CreateCheckoutRequest,
    checkout_url: str,
    current_user,
) -> None:
    try:
        send_consultation_bill_email(
            to=str(payload.client_email).strip(),
            client_name=str(payload.client_name).strip(),
            consultation_date=str(payload.consultation_date),
            amount=payload.amount,
            currency=payload.currency or get_app_config().payments_currency,
            practitioner_name=getattr(current_user, "name", None) or str(payload.practitioner_name),
            practitioner_email=getattr(current_user, "email", None),
            payment_url=checkout_url,
            booking_id=str(payload.booking_id),
        )
        service.mark_bills_sent(str(payload.booking_id))
    except Exception:
        logger.exception("Bill email flow failed for booking %s", payload.booking_id)


@router.post("/create-checkout", response_model=CreateCheckoutResponse)
def create_checkout(
    payload: CreateCheckoutRequest,
    *,
    current_user=Depends(_get_current_user),
) -> CreateCheckoutResponse:
    service = get_payment_service()
    result = service.create_checkout(payload.to_checkout_request(str(current_user.id)))
    if not result.success:
        raise failure_to_http_exception(result.error)

    _send_bill_email(service, payload, result.checkout_url, current_user)
    return CreateCheckoutResponse(checkout_url=result.checkout_url)


@router.post("/{booking_id}/cancel", response_model=CancelPaymentResponse)
def cancel_booking_payments(
    booking_id: str,
    *,
    current_user=Depends(_get_current_user),
) -> CancelPaymentResponse:
    _require_booking(booking_id, current_user)
    result = get_payment_service().cancel_payment_for_booking(booking_id)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to cancel payments", "details": result.error},
        )
    return CancelPaymentResponse.from_result(result)


@router.post("/{booking_id}/refund", response_model=RefundResponse)
def refund_booking_payment(
    booking_id: str,
    payload: RefundRequest,
    *,
    current_user=Depends(_get_current_user),
) -> RefundResponse:
    _require_booking(booking_id, current_user)
    result = get_payment_service().refund_booking_payment(booking_id, payload.reason)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": result.error})
    return RefundResponse.from_result(result)
