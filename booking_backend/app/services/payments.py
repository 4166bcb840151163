"""Application wiring for the payment orchestration service."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Dict, Optional
from uuid import uuid4

from ..config import AppConfig, get_app_config
from ..payments import PaymentOrchestrationService, PaymentProvider, ProviderCheckoutSession
from ..payments.repository import (
    PostgresBillRepository,
    PostgresPaymentAccountRepository,
    PostgresPaymentSessionRepository,
)
from ..payments.stripe_provider import StripePaymentProvider


logger = logging.getLogger("payments")


class LocalSandboxPaymentProvider(PaymentProvider):
    """Minimal provider implementation for local development without Stripe keys."""

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
        session_id = f"cs_{uuid4().hex}"
        logger.info(
            "Sandbox checkout %s for %s %s on %s",
            session_id,
            amount,
            currency,
            connected_account_id,
        )
        return ProviderCheckoutSession(
            session_id=session_id,
            checkout_url=f"https://payments.local/checkout/{session_id}",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=24),
        )

    def expire_checkout_session(self, session_id: str, *, connected_account_id: Optional[str] = None) -> None:
        logger.info("Sandbox expire checkout session %s", session_id)

    def create_refund(
        self,
        payment_intent_id: str,
        *,
        connected_account_id: Optional[str],
        reason: Optional[str],
        metadata: Dict[str, str],
    ) -> str:
        return f"re_{uuid4().hex}"


def create_payment_provider(config: AppConfig) -> PaymentProvider:
    if config.stripe_secret_key:
        return StripePaymentProvider(
            config.stripe_secret_key,
            max_network_retries=config.stripe_max_network_retries,
        )
    logger.warning("STRIPE_SECRET_KEY not configured; using sandbox payment provider")
    return LocalSandboxPaymentProvider()


@lru_cache(maxsize=1)
def get_payment_service() -> PaymentOrchestrationService:
    config = get_app_config()
    return PaymentOrchestrationService(
        accounts=PostgresPaymentAccountRepository(),
        sessions=PostgresPaymentSessionRepository(),
        bills=PostgresBillRepository(),
        provider=create_payment_provider(config),
        success_url_base=config.success_url_base,
        cancel_url=config.cancel_url,
        default_currency=config.payments_currency,
        display_timezone=config.payments_timezone,
    )


__all__ = ["LocalSandboxPaymentProvider", "create_payment_provider", "get_payment_service"]
