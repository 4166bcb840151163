"""Domain models for consultation payments."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PaymentSessionStatus(str, Enum):
    """Lifecycle status of a tracked provider checkout session."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class BillStatus(str, Enum):
    """Status of a bill issued for a booking."""

    PENDING = "pending"
    SCHEDULED = "scheduled"
    SENT = "sent"
    PAID = "paid"
    CANCELED = "canceled"
    REFUNDED = "refunded"


class CheckoutErrorKind(str, Enum):
    """Failure categories surfaced by the checkout orchestrator."""

    VALIDATION_ERROR = "validation_error"
    ACCOUNT_NOT_FOUND = "account_not_found"
    ACCOUNT_NOT_READY = "account_not_ready"
    PROVIDER_ERROR = "provider_error"
    PERSISTENCE_ERROR = "persistence_error"
    ORCHESTRATION_ERROR = "orchestration_error"


class PaymentAccountStatus(BaseModel):
    """Read-only view of a practitioner's connected payment account."""

    account_id: str
    onboarding_completed: bool = False
    payments_enabled: bool = False

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def is_ready(self) -> bool:
        """Return ``True`` when checkout sessions may be created."""
        return self.onboarding_completed and self.payments_enabled


class CheckoutRequest(BaseModel):
    """Inputs for a consultation checkout.

    Fields accept any JSON value; the orchestrator reports missing or
    malformed values as a validation failure.
    """

    booking_id: Any = None
    client_email: Any = None
    client_name: Any = None
    consultation_date: Any = None
    amount: Any = None
    practitioner_name: Any = None
    practitioner_account_id: Any = Field(
        default=None,
        description="Owner identifier used to look up the practitioner's payment account",
    )
    currency: Any = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ProviderCheckoutSession(BaseModel):
    """Session identifier and hosted URL returned by the payment provider."""

    session_id: str
    checkout_url: str
    expires_at: Optional[datetime] = None
    status: str = "open"

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def is_expired(self) -> bool:
        return self.status == "expired"


class PaymentSessionRecord(BaseModel):
    """Durable record of a provider checkout session linked to a booking."""

    session_id: str
    booking_id: str
    amount: int = Field(gt=0, description="Amount in the currency's minor unit")
    currency: str = Field(min_length=3, max_length=3)
    status: PaymentSessionStatus = PaymentSessionStatus.PENDING
    record_id: Optional[str] = None
    connected_account_id: Optional[str] = None
    provider_payment_intent_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("currency")
    @classmethod
    def _lower_currency(cls, value: str) -> str:
        return value.lower()


class Bill(BaseModel):
    """Bill issued to a client for a booking."""

    bill_id: str
    booking_id: str
    amount: Decimal
    status: BillStatus
    refund_id: Optional[str] = None
    refund_reason: Optional[str] = None
    refunded_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class CheckoutFailure(BaseModel):
    """Typed failure branch of :class:`CheckoutResult`."""

    kind: CheckoutErrorKind
    code: str
    message: str
    detail: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class CheckoutResult(BaseModel):
    """Outcome of ``create_checkout``: a URL or a failure, never both."""

    success: bool
    checkout_url: Optional[str] = None
    error: Optional[CheckoutFailure] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="after")
    def _exactly_one_branch(self) -> "CheckoutResult":
        if self.success and (not self.checkout_url or self.error is not None):
            raise ValueError("successful results carry a checkout_url and no error")
        if not self.success and (self.error is None or self.checkout_url is not None):
            raise ValueError("failed results carry an error and no checkout_url")
        return self

    @classmethod
    def ok(cls, checkout_url: str) -> "CheckoutResult":
        return cls(success=True, checkout_url=checkout_url)

    @classmethod
    def failed(cls, failure: CheckoutFailure) -> "CheckoutResult":
        return cls(success=False, error=failure)


class PaymentCancellationResult(BaseModel):
    """Outcome of cancelling the pending payments of a booking."""

    success: bool
    cancelled_sessions: int = 0
    canceled_bills: int = 0
    error: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class RefundResult(BaseModel):
    """Outcome of refunding the paid bill of a booking."""

    success: bool
    refund_id: Optional[str] = None
    error: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)
