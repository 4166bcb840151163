"""Stripe Connect implementation of the payment provider contract."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import stripe

from .exceptions import ProviderError
from .models import ProviderCheckoutSession
from .service import PaymentProvider

logger = logging.getLogger("payments.stripe")

_REFUND_REASONS = {"duplicate", "fraudulent", "requested_by_customer"}


def _error_code(exc: stripe.StripeError) -> Optional[str]:
    code = getattr(exc, "code", None)
    if code:
        return str(code)
    error = getattr(exc, "error", None)
    return getattr(error, "code", None)


class StripePaymentProvider(PaymentProvider):
    """Creates direct charges on the practitioner's connected Stripe account."""

    def __init__(self, api_key: str, *, max_network_retries: int = 0) -> None:
        if not api_key:
            raise ValueError("api_key must be provided")
        self._api_key = api_key
        stripe.max_network_retries = max_network_retries

    def _request_options(self, connected_account_id: Optional[str]) -> Dict[str, Any]:
        options: Dict[str, Any] = {"api_key": self._api_key}
        if connected_account_id:
            options["stripe_account"] = connected_account_id
        return options

    def create_checkout_session(
        self,
        *,
        connected_account_id: str,
        amount: int,
        currency: str,
        product_name: str,
        product_description: str,
        customer_email: str,
        metadata: Dict[str, str],
        success_url: str,
        cancel_url: str,
        idempotency_key: str,
    ) -> ProviderCheckoutSession:
        try:
            session = stripe.checkout.Session.create(
                payment_method_types=["card"],
                mode="payment",
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "product_data": {
                                "name": product_name,
                                "description": product_description,
                            },
                            "unit_amount": amount,
                        },
                        "quantity": 1,
                    }
                ],
                customer_email=customer_email,
                metadata=metadata,
                success_url=success_url,
                cancel_url=cancel_url,
                idempotency_key=idempotency_key,
                **self._request_options(connected_account_id),
            )
        except stripe.StripeError as exc:
            raise ProviderError(
                "provider_error",
                "Failed to create checkout session",
                {"details": str(exc), "provider_code": _error_code(exc)},
            ) from exc

        expires_at = session.get("expires_at")
        return ProviderCheckoutSession(
            session_id=session["id"],
            checkout_url=session.get("url") or "",
            expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc) if expires_at else None,
            status=session.get("status") or "open",
        )

    def expire_checkout_session(self, session_id: str, *, connected_account_id: Optional[str] = None) -> None:
        try:
            stripe.checkout.Session.expire(session_id, **self._request_options(connected_account_id))
        except stripe.StripeError as exc:
            raise ProviderError(
                "provider_error",
                f"Failed to expire checkout session {session_id}",
                {"details": str(exc), "provider_code": _error_code(exc)},
            ) from exc

    def create_refund(
        self,
        payment_intent_id: str,
        *,
        connected_account_id: Optional[str],
        reason: Optional[str],
        metadata: Dict[str, str],
    ) -> str:
        params: Dict[str, Any] = {
            "payment_intent": payment_intent_id,
            "reason": reason if reason in _REFUND_REASONS else "requested_by_customer",
            "metadata": metadata,
        }
        try:
            try:
                refund = stripe.Refund.create(**params, **self._request_options(connected_account_id))
            except stripe.InvalidRequestError as exc:
                # destination charges live on the platform account
                if not connected_account_id or _error_code(exc) != "resource_missing":
                    raise
                logger.info("Payment intent %s not on connected account, refunding on platform", payment_intent_id)
                refund = stripe.Refund.create(**params, **self._request_options(None))
        except stripe.StripeError as exc:
            raise ProviderError(
                "provider_error",
                "Failed to create refund",
                {"details": str(exc), "provider_code": _error_code(exc)},
            ) from exc
        return refund["id"]


__all__ = ["StripePaymentProvider"]
