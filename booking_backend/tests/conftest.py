"""In-memory collaborators for payment and booking tests."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

import pytest

from booking_backend.app.bookings import Booking, BookingRepository, BookingStatus
from booking_backend.app.payments import (
    Bill,
    BillRepository,
    BillStatus,
    PaymentAccountRepository,
    PaymentAccountStatus,
    PaymentOrchestrationService,
    PaymentProvider,
    PaymentSessionRecord,
    PaymentSessionRepository,
    PaymentSessionStatus,
    ProviderCheckoutSession,
    ProviderError,
)


class InMemoryPaymentAccountRepository(PaymentAccountRepository):
    def __init__(self) -> None:
        self.accounts: Dict[str, PaymentAccountStatus] = {}
        self.lookups: List[str] = []
        self.fail_with: Optional[Exception] = None

    def get_account_for_payments(self, owner_id: str) -> Optional[PaymentAccountStatus]:
        self.lookups.append(owner_id)
        if self.fail_with is not None:
            raise self.fail_with
        return self.accounts.get(owner_id)


class InMemoryPaymentSessionRepository(PaymentSessionRepository):
    def __init__(self) -> None:
        self.records: Dict[str, PaymentSessionRecord] = {}
        self.writes: List[PaymentSessionRecord] = []
        self.fail_with: Optional[Exception] = None

    def create_payment_session(self, record: PaymentSessionRecord) -> PaymentSessionRecord:
        if self.fail_with is not None:
            raise self.fail_with
        self.writes.append(record)
        self.records[record.session_id] = record
        return record

    def list_sessions_for_booking(self, booking_id: str) -> Sequence[PaymentSessionRecord]:
        return [record for record in self.records.values() if record.booking_id == booking_id]

    def update_session_status(self, session_id: str, status: PaymentSessionStatus) -> Optional[PaymentSessionRecord]:
        record = self.records.get(session_id)
        if record is None:
            return None
        updated = record.model_copy(update={"status": status, "updated_at": datetime.now(timezone.utc)})
        self.records[session_id] = updated
        return updated


class InMemoryBillRepository(BillRepository):
    def __init__(self) -> None:
        self.bills: Dict[str, Bill] = {}

    def add(self, bill_id: str, booking_id: str, status: BillStatus, amount: str = "50.00") -> Bill:
        bill = Bill(bill_id=bill_id, booking_id=booking_id, amount=Decimal(amount), status=status)
        self.bills[bill_id] = bill
        return bill

    def get_bills_for_booking(self, booking_id: str) -> Sequence[Bill]:
        return [bill for bill in self.bills.values() if bill.booking_id == booking_id]

    def update_bill_status(self, bill_id: str, status: BillStatus) -> Optional[Bill]:
        bill = self.bills.get(bill_id)
        if bill is None:
            return None
        updated = bill.model_copy(update={"status": status})
        self.bills[bill_id] = updated
        return updated

    def mark_bill_refunded(self, bill_id: str, *, refund_id: str, reason: Optional[str]) -> Optional[Bill]:
        bill = self.bills.get(bill_id)
        if bill is None:
            return None
        updated = bill.model_copy(
            update={
                "status": BillStatus.REFUNDED,
                "refund_id": refund_id,
                "refund_reason": reason,
                "refunded_at": datetime.now(timezone.utc),
            }
        )
        self.bills[bill_id] = updated
        return updated


class FakePaymentProvider(PaymentProvider):
    """Replays the session created for a reused idempotency key, like Stripe."""

    def __init__(self) -> None:
        self.checkout_calls: List[Dict[str, object]] = []
        self.sessions_by_key: Dict[str, str] = {}
        self.session_status: Dict[str, str] = {}
        self.expired: List[tuple] = []
        self.refunds: List[Dict[str, object]] = []
        self.fail_with: Optional[Exception] = None
        self.expire_fail_with: Optional[Exception] = None
        self.refund_fail_with: Optional[Exception] = None

    def create_checkout_session(self, **kwargs) -> ProviderCheckoutSession:
        self.checkout_calls.append(kwargs)
        if self.fail_with is not None:
            raise self.fail_with
        key = kwargs["idempotency_key"]
        session_id = self.sessions_by_key.get(key)
        if session_id is None:
            session_id = f"cs_test_{len(self.sessions_by_key) + 1}"
            self.sessions_by_key[key] = session_id
            self.session_status[session_id] = "open"
        return ProviderCheckoutSession(
            session_id=session_id,
            checkout_url=f"https://checkout.test/pay/{session_id}",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=24),
            status=self.session_status[session_id],
        )

    def expire_checkout_session(self, session_id: str, *, connected_account_id: Optional[str] = None) -> None:
        self.expired.append((session_id, connected_account_id))
        if self.expire_fail_with is not None:
            raise self.expire_fail_with
        self.session_status[session_id] = "expired"

    def create_refund(
        self,
        payment_intent_id: str,
        *,
        connected_account_id: Optional[str],
        reason: Optional[str],
        metadata: Dict[str, str],
    ) -> str:
        if self.refund_fail_with is not None:
            raise self.refund_fail_with
        self.refunds.append(
            {
                "payment_intent_id": payment_intent_id,
                "connected_account_id": connected_account_id,
                "reason": reason,
                "metadata": metadata,
            }
        )
        return f"re_test_{len(self.refunds)}"


class InMemoryBookingRepository(BookingRepository):
    def __init__(self) -> None:
        self.bookings: Dict[str, Booking] = {}

    def add(
        self,
        booking_id: str,
        *,
        status: BookingStatus = BookingStatus.PENDING,
        practitioner_id: str = "prac-1",
        client_email: Optional[str] = "client@example.com",
    ) -> Booking:
        start = datetime(2030, 3, 4, 10, 0, tzinfo=timezone.utc)
        booking = Booking(
            booking_id=booking_id,
            practitioner_id=practitioner_id,
            client_id="client-1",
            client_email=client_email,
            client_name="Ana Client",
            status=status,
            start_time=start,
            end_time=start + timedelta(minutes=50),
        )
        self.bookings[booking_id] = booking
        return booking

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self.bookings.get(booking_id)

    def update_booking_status(self, booking_id: str, status: BookingStatus) -> Optional[Booking]:
        booking = self.bookings.get(booking_id)
        if booking is None:
            return None
        updated = booking.model_copy(update={"status": status})
        self.bookings[booking_id] = updated
        return updated


class PaymentFixtures:
    def __init__(self) -> None:
        self.accounts = InMemoryPaymentAccountRepository()
        self.sessions = InMemoryPaymentSessionRepository()
        self.bills = InMemoryBillRepository()
        self.provider = FakePaymentProvider()
        self.service = PaymentOrchestrationService(
            accounts=self.accounts,
            sessions=self.sessions,
            bills=self.bills,
            provider=self.provider,
            success_url_base="https://app.test/payment/success",
            cancel_url="https://app.test/payment/cancelled",
        )

    def add_account(
        self,
        owner_id: str = "prac-1",
        *,
        account_id: str = "acct_123",
        onboarding_completed: bool = True,
        payments_enabled: bool = True,
    ) -> PaymentAccountStatus:
        account = PaymentAccountStatus(
            account_id=account_id,
            onboarding_completed=onboarding_completed,
            payments_enabled=payments_enabled,
        )
        self.accounts.accounts[owner_id] = account
        return account


@pytest.fixture
def payments() -> PaymentFixtures:
    return PaymentFixtures()


@pytest.fixture
def bookings() -> InMemoryBookingRepository:
    return InMemoryBookingRepository()


@pytest.fixture
def provider_error() -> ProviderError:
    return ProviderError("provider_error", "Failed to create checkout session", {"details": "card_declined"})
