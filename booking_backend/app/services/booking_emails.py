"""Transactional emails for bookings and consultation bills."""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from ...mail import (
    EmailProvider,
    create_email_provider,
    load_email_config,
    render_booking_manage_links,
    render_consultation_bill,
)
from ..manage_links import ManageAction, ManageLinkSigner

logger = logging.getLogger("email")

_email_provider: Optional[EmailProvider] = None


def get_email_provider() -> EmailProvider:
    global _email_provider
    if _email_provider is None:
        _email_provider = create_email_provider(load_email_config())
    return _email_provider


def set_email_provider(provider: Optional[EmailProvider]) -> None:
    global _email_provider
    _email_provider = provider


def _dispatch(
    provider: EmailProvider,
    *,
    to: str,
    email_type: str,
    subject: str,
    html_body: str,
    text_body: str,
    log_context: dict,
) -> None:
    context = {**provider.describe(), **log_context, "email_recipient": to, "email_type": email_type}
    logger.info("Dispatching %s email", email_type, extra={**context, "email_event": f"{email_type}.dispatch.start"})
    try:
        provider.send_email(to, subject, html_body, text_body)
    except Exception:
        logger.exception(
            "Failed to send %s email",
            email_type,
            extra={**context, "email_event": f"{email_type}.dispatch.error"},
        )
        raise
    logger.info("%s email dispatched", email_type, extra={**context, "email_event": f"{email_type}.dispatch.success"})


def send_consultation_bill_email(
    *,
    to: str,
    client_name: str,
    consultation_date: str,
    amount: Union[Decimal, float, int, str],
    currency: str,
    practitioner_name: str,
    practitioner_email: Optional[str],
    payment_url: str,
    booking_id: str,
) -> None:
    subject, text_body, html_body = render_consultation_bill(
        {
            "client_name": client_name,
            "consultation_date": consultation_date,
            "amount": f"{amount} {currency.upper()}",
            "practitioner_name": practitioner_name,
            "practitioner_email": practitioner_email or "",
            "payment_url": payment_url,
        }
    )
    _dispatch(
        get_email_provider(),
        to=to,
        email_type="consultation_bill",
        subject=subject,
        html_body=html_body,
        text_body=text_body,
        log_context={"booking_id": booking_id},
    )


def send_booking_manage_links_email(
    signer: ManageLinkSigner,
    *,
    base_url: str,
    booking_id: str,
    to: str,
    client_name: str,
    practitioner_name: str,
    start_time: datetime,
) -> None:
    """Email the client signed links to reschedule or cancel a booking."""

    subject, text_body, html_body = render_booking_manage_links(
        {
            "client_name": client_name,
            "practitioner_name": practitioner_name,
            "start_time": start_time.strftime("%d %B %Y %H:%M"),
            "reschedule_url": signer.build_manage_url(base_url, ManageAction.RESCHEDULE, booking_id, to),
            "cancel_url": signer.build_manage_url(base_url, ManageAction.CANCEL, booking_id, to),
        }
    )
    _dispatch(
        get_email_provider(),
        to=to,
        email_type="booking_manage_links",
        subject=subject,
        html_body=html_body,
        text_body=text_body,
        log_context={"booking_id": booking_id},
    )


__all__ = [
    "get_email_provider",
    "send_booking_manage_links_email",
    "send_consultation_bill_email",
    "set_email_provider",
]
