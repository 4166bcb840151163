"""API schemas for payment endpoints."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..payments import CheckoutRequest, PaymentCancellationResult, RefundResult


class CreateCheckoutRequest(BaseModel):
    booking_id: Any = Field(default=None, alias="bookingId")
    client_email: Any = Field(default=None, alias="clientEmail")
    client_name: Any = Field(default=None, alias="clientName")
    consultation_date: Any = Field(default=None, alias="consultationDate")
    amount: Any = None
    practitioner_name: Any = Field(default=None, alias="practitionerName")
    currency: Any = None

    model_config = ConfigDict(populate_by_name=True)

    def to_checkout_request(self, practitioner_account_id: str) -> CheckoutRequest:
        return CheckoutRequest(
            booking_id=self.booking_id,
            client_email=self.client_email,
            client_name=self.client_name,
            consultation_date=self.consultation_date,
            amount=self.amount,
            practitioner_name=self.practitioner_name,
            practitioner_account_id=practitioner_account_id,
            currency=self.currency,
        )


class CreateCheckoutResponse(BaseModel):
    success: bool = True
    checkout_url: str = Field(alias="checkoutUrl")

    model_config = ConfigDict(populate_by_name=True)


class RefundRequest(BaseModel):
    reason: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class RefundResponse(BaseModel):
    success: bool
    refund_id: Optional[str] = Field(default=None, alias="refundId")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: RefundResult) -> "RefundResponse":
        return cls(success=result.success, refund_id=result.refund_id)


class CancelPaymentResponse(BaseModel):
    success: bool
    cancelled_sessions: int = Field(alias="cancelledSessions")
    canceled_bills: int = Field(alias="canceledBills")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: PaymentCancellationResult) -> "CancelPaymentResponse":
        return cls(
            success=result.success,
            cancelled_sessions=result.cancelled_sessions,
            canceled_bills=result.canceled_bills,
        )
