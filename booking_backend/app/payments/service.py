"""Orchestrates consultation checkouts across the account store, provider and session store."""
from __future__ import annotations

import hashlib
import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Protocol, Sequence
from zoneinfo import ZoneInfo

from .exceptions import (
    AccountNotFoundError,
    AccountNotReadyError,
    CheckoutError,
    OrchestrationError,
    PersistenceError,
    ProviderError,
    ValidationError,
)
from .models import (
    Bill,
    BillStatus,
    CheckoutRequest,
    CheckoutResult,
    PaymentAccountStatus,
    PaymentCancellationResult,
    PaymentSessionRecord,
    PaymentSessionStatus,
    ProviderCheckoutSession,
    RefundResult,
)

logger = logging.getLogger("payments")

_REQUIRED_FIELDS = (
    "booking_id",
    "client_email",
    "client_name",
    "consultation_date",
    "amount",
    "practitioner_name",
    "practitioner_account_id",
)

_ZERO_DECIMAL_CURRENCIES = frozenset(
    {"bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga", "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf"}
)

_CLOSED_SESSION_STATUSES = frozenset({PaymentSessionStatus.CANCELLED, PaymentSessionStatus.EXPIRED})
_MAX_SESSION_ATTEMPTS = 3


class PaymentAccountRepository(Protocol):
    """Lookup of connected payment accounts by owner."""

    def get_account_for_payments(self, owner_id: str) -> Optional[PaymentAccountStatus]:
        ...


class PaymentSessionRepository(Protocol):
    """Durable storage of provider checkout sessions."""

    def create_payment_session(self, record: PaymentSessionRecord) -> PaymentSessionRecord:
        ...

    def list_sessions_for_booking(self, booking_id: str) -> Sequence[PaymentSessionRecord]:
        ...

    def update_session_status(self, session_id: str, status: PaymentSessionStatus) -> Optional[PaymentSessionRecord]:
        ...


class BillRepository(Protocol):
    """Bills issued for bookings."""

    def get_bills_for_booking(self, booking_id: str) -> Sequence[Bill]:
        ...

    def update_bill_status(self, bill_id: str, status: BillStatus) -> Optional[Bill]:
        ...

    def mark_bill_refunded(self, bill_id: str, *, refund_id: str, reason: Optional[str]) -> Optional[Bill]:
        ...


class PaymentProvider(Protocol):
    """External payment processor integration.

    Implementations raise :class:`ProviderError` for every failure.
    """

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
        """Create a hosted checkout session charged on the connected account."""

    def expire_checkout_session(self, session_id: str, *, connected_account_id: Optional[str] = None) -> None:
        """Expire a checkout session so it can no longer be paid."""

    def create_refund(
        self,
        payment_intent_id: str,
        *,
        connected_account_id: Optional[str],
        reason: Optional[str],
        metadata: Dict[str, str],
    ) -> str:
        """Refund a payment in full and return the refund identifier."""


@dataclass
class ValidatedCheckout:
    booking_id: str
    client_email: str
    client_name: str
    consultation_date: str
    consultation_at: datetime
    amount_minor: int
    currency: str
    practitioner_name: str
    practitioner_account_id: str


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _is_scalar_text(value: object) -> bool:
    return isinstance(value, (str, int)) and not isinstance(value, bool)


def _parse_amount(value: object) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValidationError("invalid_amount", "Amount must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError("invalid_amount", "Amount must be a finite number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValidationError("invalid_amount", "Amount must be a number") from exc
    if not amount.is_finite():
        raise ValidationError("invalid_amount", "Amount must be a finite number")
    if amount <= 0:
        raise ValidationError("invalid_amount", "Amount must be greater than zero")
    return amount


def to_minor_units(amount: Decimal, currency: str) -> int:
    """Convert a major-unit amount to the provider's minor unit without rounding."""

    exponent = 0 if currency.lower() in _ZERO_DECIMAL_CURRENCIES else 2
    scaled = amount.scaleb(exponent)
    if scaled != scaled.to_integral_value():
        raise ValidationError(
            "invalid_amount_precision",
            f"Amount has more decimal places than {currency.upper()} supports",
            {"amount": str(amount)},
        )
    return int(scaled)


def _parse_consultation_date(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(
            "invalid_consultation_date",
            "Consultation date must be an ISO 8601 timestamp",
            {"consultation_date": value},
        ) from exc
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def build_idempotency_key(
    booking_id: str,
    amount_minor: int,
    consultation_date: str,
    attempt: int,
    params: Dict[str, Any],
) -> str:
    """Key shared by repeated checkout attempts with identical inputs.

    ``attempt`` counts the sessions of the booking that were already closed,
    so a new checkout after an expiry never replays the expired session.
    ``params`` is every argument sent to the provider; changing any of them
    yields a different key.
    """

    encoded = json.dumps(params, sort_keys=True, default=str).encode("utf-8")
    fingerprint = hashlib.sha256(encoded).hexdigest()[:16]
    return f"booking:{booking_id}:{amount_minor}:{consultation_date}:{attempt}:{fingerprint}"


@dataclass
class PaymentOrchestrationService:
    """Coordinates account readiness, provider sessions and session tracking."""

    accounts: PaymentAccountRepository
    sessions: PaymentSessionRepository
    bills: BillRepository
    provider: PaymentProvider
    success_url_base: str
    cancel_url: str
    default_currency: str = "eur"
    display_timezone: str = "Europe/Madrid"

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def create_checkout(self, request: CheckoutRequest) -> CheckoutResult:
        """Create a hosted checkout for a consultation.

        Returns a :class:`CheckoutResult`; errors never propagate to the
        caller. Steps short-circuit on the first failure.
        """

        try:
            checkout = self._validate(request)
        except ValidationError as exc:
            logger.info("Rejected checkout request: %s", exc.message, extra={"checkout_error": exc.code})
            return CheckoutResult.failed(exc.to_failure())

        log_context = {
            "booking_id": checkout.booking_id,
            "practitioner_account_id": checkout.practitioner_account_id,
        }
        try:
            account = self._require_ready_account(checkout.practitioner_account_id)
            session = self._create_provider_session(checkout, account, log_context)
            self._record_session(checkout, account, session, log_context)
        except (AccountNotFoundError, AccountNotReadyError) as exc:
            logger.info("Checkout precondition failed: %s", exc.message, extra={**log_context, "checkout_error": exc.code})
            return CheckoutResult.failed(exc.to_failure())
        except CheckoutError as exc:
            return CheckoutResult.failed(exc.to_failure())
        except Exception as exc:
            logger.exception("Unexpected error while orchestrating checkout", extra=log_context)
            error = OrchestrationError("checkout_failed", "Failed to create checkout session", {"details": str(exc)})
            return CheckoutResult.failed(error.to_failure())

        logger.info(
            "Checkout session %s created",
            session.session_id,
            extra={**log_context, "session_id": session.session_id},
        )
        return CheckoutResult.ok(session.checkout_url)

    def _validate(self, request: CheckoutRequest) -> ValidatedCheckout:
        missing = [name for name in _REQUIRED_FIELDS if _is_blank(getattr(request, name))]
        if missing:
            raise ValidationError("missing_fields", "Missing required fields", {"fields": missing})

        malformed = [
            name for name in _REQUIRED_FIELDS if name != "amount" and not _is_scalar_text(getattr(request, name))
        ]
        if malformed:
            raise ValidationError("invalid_fields", "Fields must be strings or numbers", {"fields": malformed})

        raw_currency = self.default_currency if _is_blank(request.currency) else request.currency
        if not isinstance(raw_currency, str):
            raise ValidationError("invalid_currency", "Currency must be a 3 letter ISO code", {"currency": raw_currency})
        currency = raw_currency.strip().lower()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError("invalid_currency", "Currency must be a 3 letter ISO code", {"currency": currency})

        amount = _parse_amount(request.amount)
        consultation_date = str(request.consultation_date).strip()
        return ValidatedCheckout(
            booking_id=str(request.booking_id).strip(),
            client_email=str(request.client_email).strip(),
            client_name=str(request.client_name).strip(),
            consultation_date=consultation_date,
            consultation_at=_parse_consultation_date(consultation_date),
            amount_minor=to_minor_units(amount, currency),
            currency=currency,
            practitioner_name=str(request.practitioner_name).strip(),
            practitioner_account_id=str(request.practitioner_account_id).strip(),
        )

    def _require_ready_account(self, owner_id: str) -> PaymentAccountStatus:
        account = self.accounts.get_account_for_payments(owner_id)
        if account is None:
            raise AccountNotFoundError(
                "account_not_found",
                "Payment account not found for practitioner. Complete onboarding first.",
            )
        if not account.is_ready:
            raise AccountNotReadyError(
                "account_not_ready",
                "Payment account not ready for payments",
                {
                    "onboarding_completed": account.onboarding_completed,
                    "payments_enabled": account.payments_enabled,
                },
            )
        return account

    def _closed_session_count(self, booking_id: str) -> int:
        sessions = self.sessions.list_sessions_for_booking(booking_id)
        return sum(1 for session in sessions if session.status in _CLOSED_SESSION_STATUSES)

    def _create_provider_session(
        self,
        checkout: ValidatedCheckout,
        account: PaymentAccountStatus,
        log_context: Dict[str, str],
    ) -> ProviderCheckoutSession:
        local_time = checkout.consultation_at.astimezone(ZoneInfo(self.display_timezone))
        params: Dict[str, Any] = {
            "connected_account_id": account.account_id,
            "amount": checkout.amount_minor,
            "currency": checkout.currency,
            "product_name": f"Consultation with {checkout.practitioner_name}",
            "product_description": f"Consultation on {local_time:%d %B %Y at %H:%M}",
            "customer_email": checkout.client_email,
            "metadata": {
                "booking_id": checkout.booking_id,
                "consultation_date": checkout.consultation_date,
                "client_name": checkout.client_name,
                "practitioner_name": checkout.practitioner_name,
                "practitioner_user_id": checkout.practitioner_account_id,
            },
            "success_url": f"{self.success_url_base}?booking_id={checkout.booking_id}",
            "cancel_url": self.cancel_url,
        }
        attempt = self._closed_session_count(checkout.booking_id)

        for _ in range(_MAX_SESSION_ATTEMPTS):
            key = build_idempotency_key(
                checkout.booking_id,
                checkout.amount_minor,
                checkout.consultation_date,
                attempt,
                params,
            )
            try:
                session = self.provider.create_checkout_session(**params, idempotency_key=key)
            except Exception as exc:
                logger.exception(
                    "Payment provider failed to create checkout session",
                    extra={**log_context, "account_id": account.account_id},
                )
                if isinstance(exc, ProviderError):
                    raise
                raise ProviderError(
                    "provider_error",
                    "Failed to create checkout session",
                    {"details": str(exc)},
                ) from exc
            if not session.is_expired:
                return session
            # a reused key replays the original session, which may have been expired since
            logger.warning(
                "Provider replayed expired checkout session %s",
                session.session_id,
                extra={**log_context, "session_id": session.session_id, "attempt": attempt},
            )
            attempt += 1

        raise ProviderError(
            "provider_error",
            "Failed to create checkout session",
            {"details": "provider returned only expired sessions"},
        )

    def _record_session(
        self,
        checkout: ValidatedCheckout,
        account: PaymentAccountStatus,
        session: ProviderCheckoutSession,
        log_context: Dict[str, str],
    ) -> PaymentSessionRecord:
        record = PaymentSessionRecord(
            session_id=session.session_id,
            booking_id=checkout.booking_id,
            amount=checkout.amount_minor,
            currency=checkout.currency,
            status=PaymentSessionStatus.PENDING,
            connected_account_id=account.account_id,
            created_at=self._now(),
            updated_at=self._now(),
        )
        try:
            return self.sessions.create_payment_session(record)
        except Exception as exc:
            logger.exception(
                "Checkout session %s created but not recorded; reconciliation required",
                session.session_id,
                extra={**log_context, "session_id": session.session_id, "account_id": account.account_id},
            )
            self._expire_quietly(session.session_id, account.account_id)
            raise PersistenceError(
                "payment_session_not_recorded",
                "Failed to create checkout session",
                {"details": str(exc), "session_id": session.session_id},
            ) from exc

    def _expire_quietly(self, session_id: str, connected_account_id: Optional[str]) -> bool:
        try:
            self.provider.expire_checkout_session(session_id, connected_account_id=connected_account_id)
        except Exception:
            logger.warning("Failed to expire checkout session %s", session_id, exc_info=True)
            return False
        return True

    def mark_bills_sent(self, booking_id: str) -> int:
        """Flag unsent bills of a booking as sent once the bill email went out."""

        updated = 0
        for bill in self.bills.get_bills_for_booking(booking_id):
            if bill.status in {BillStatus.PENDING, BillStatus.SCHEDULED}:
                self.bills.update_bill_status(bill.bill_id, BillStatus.SENT)
                updated += 1
        return updated

    def cancel_payment_for_booking(self, booking_id: str) -> PaymentCancellationResult:
        """Expire pending sessions and cancel unpaid bills of a booking."""

        try:
            sessions = self.sessions.list_sessions_for_booking(booking_id)
        except Exception as exc:
            logger.exception("Payment cancellation failed for booking %s", booking_id)
            return PaymentCancellationResult(success=False, error=str(exc))

        cancelled = 0
        for session in sessions:
            if session.status != PaymentSessionStatus.PENDING:
                continue
            self._expire_quietly(session.session_id, session.connected_account_id)
            try:
                self.sessions.update_session_status(session.session_id, PaymentSessionStatus.CANCELLED)
            except Exception:
                logger.exception("Failed to cancel payment session %s", session.session_id)
                continue
            cancelled += 1

        canceled_bills = 0
        try:
            for bill in self.bills.get_bills_for_booking(booking_id):
                if bill.status in {BillStatus.PAID, BillStatus.CANCELED, BillStatus.REFUNDED}:
                    continue
                self.bills.update_bill_status(bill.bill_id, BillStatus.CANCELED)
                canceled_bills += 1
        except Exception:
            logger.exception("Failed to cancel bills for booking %s", booking_id)

        return PaymentCancellationResult(
            success=True,
            cancelled_sessions=cancelled,
            canceled_bills=canceled_bills,
        )

    def refund_booking_payment(self, booking_id: str, reason: Optional[str] = None) -> RefundResult:
        """Refund the paid bill of a booking in full."""

        try:
            paid_bill = next(
                (bill for bill in self.bills.get_bills_for_booking(booking_id) if bill.status == BillStatus.PAID),
                None,
            )
            if paid_bill is None:
                return RefundResult(success=False, error="No paid bill found for this booking")

            completed = next(
                (
                    session
                    for session in self.sessions.list_sessions_for_booking(booking_id)
                    if session.status == PaymentSessionStatus.COMPLETED
                ),
                None,
            )
            if completed is not None and completed.provider_payment_intent_id:
                try:
                    refund_id = self.provider.create_refund(
                        completed.provider_payment_intent_id,
                        connected_account_id=completed.connected_account_id,
                        reason=reason,
                        metadata={"booking_id": booking_id, "refund_reason": reason or "Full refund requested"},
                    )
                except Exception as exc:
                    logger.exception("Provider refund failed for booking %s", booking_id)
                    return RefundResult(success=False, error=f"Provider refund failed: {exc}")
            else:
                refund_id = f"manual_refund_{int(self._now().timestamp() * 1000)}_{booking_id[:8]}"

            self.bills.mark_bill_refunded(paid_bill.bill_id, refund_id=refund_id, reason=reason)
        except Exception as exc:
            logger.exception("Refund error for booking %s", booking_id)
            return RefundResult(success=False, error=str(exc))

        return RefundResult(success=True, refund_id=refund_id)


__all__ = [
    "BillRepository",
    "PaymentAccountRepository",
    "PaymentOrchestrationService",
    "PaymentProvider",
    "PaymentSessionRepository",
    "build_idempotency_key",
    "to_minor_units",
]
