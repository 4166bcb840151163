"""Persistence layer for payment accounts, payment sessions and bills."""
from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Iterable, Optional, Sequence

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from .models import (
    Bill,
    BillStatus,
    PaymentAccountStatus,
    PaymentSessionRecord,
    PaymentSessionStatus,
)

try:  # pragma: no cover - resolve connection helper when imported from FastAPI app
    from booking_backend.app_context import get_conn
except ModuleNotFoundError as exc:  # pragma: no cover
    if exc.name != "booking_backend":
        raise
    from ...app_context import get_conn  # type: ignore[no-redef]


@contextmanager
def managed_connection(conn: Optional[PgConnection] = None):
    """Context manager that manages transaction boundaries for optional connections."""

    if conn is not None:
        yield conn, False
        return

    connection = get_conn()
    try:
        yield connection, True
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


class PostgresRepository:
    def __init__(self, *, conn: Optional[PgConnection] = None) -> None:
        self._conn = conn

    @contextmanager
    def _cursor(self) -> Iterable[PgCursor]:
        with managed_connection(self._conn) as (connection, _managed):
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
            finally:
                cursor.close()


def _row_to_account(row: dict) -> PaymentAccountStatus:
    return PaymentAccountStatus(
        account_id=row["stripe_account_id"],
        onboarding_completed=bool(row.get("onboarding_completed")),
        payments_enabled=bool(row.get("payments_enabled")),
    )


def _row_to_session(row: dict) -> PaymentSessionRecord:
    return PaymentSessionRecord(
        record_id=str(row["id"]) if row.get("id") is not None else None,
        session_id=row["stripe_session_id"],
        booking_id=str(row["booking_id"]),
        amount=int(row["amount"]),
        currency=row["currency"],
        status=PaymentSessionStatus(row["status"]),
        connected_account_id=row.get("stripe_account_id"),
        provider_payment_intent_id=row.get("stripe_payment_intent_id"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_bill(row: dict) -> Bill:
    return Bill(
        bill_id=str(row["id"]),
        booking_id=str(row["booking_id"]),
        amount=Decimal(str(row["amount"])),
        status=BillStatus(row["status"]),
        refund_id=row.get("stripe_refund_id"),
        refund_reason=row.get("refund_reason"),
        refunded_at=row.get("refunded_at"),
    )


class PostgresPaymentAccountRepository(PostgresRepository):
    """Reads connected account readiness flags."""

    def get_account_for_payments(self, owner_id: str) -> Optional[PaymentAccountStatus]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT stripe_account_id, onboarding_completed, payments_enabled
                FROM stripe_accounts
                WHERE user_id = %s
                LIMIT 1
                """,
                (owner_id,),
            )
            row = cursor.fetchone()
            return _row_to_account(row) if row else None


class PostgresPaymentSessionRepository(PostgresRepository):
    """Tracks provider checkout sessions keyed by the provider session id."""

    def create_payment_session(self, record: PaymentSessionRecord) -> PaymentSessionRecord:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO payment_sessions (
                    booking_id,
                    stripe_session_id,
                    stripe_account_id,
                    amount,
                    currency,
                    status
                )
                VALUES (%(booking_id)s, %(session_id)s, %(account_id)s, %(amount)s, %(currency)s, %(status)s)
                ON CONFLICT (stripe_session_id) DO UPDATE SET
                    booking_id = EXCLUDED.booking_id,
                    stripe_account_id = EXCLUDED.stripe_account_id,
                    amount = EXCLUDED.amount,
                    currency = EXCLUDED.currency,
                    status = EXCLUDED.status,
                    updated_at = NOW()
                RETURNING *
                """,
                {
                    "booking_id": record.booking_id,
                    "session_id": record.session_id,
                    "account_id": record.connected_account_id,
                    "amount": record.amount,
                    "currency": record.currency,
                    "status": record.status.value,
                },
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist payment session")
            return _row_to_session(row)

    def list_sessions_for_booking(self, booking_id: str) -> Sequence[PaymentSessionRecord]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM payment_sessions
                WHERE booking_id = %s
                ORDER BY created_at DESC
                """,
                (booking_id,),
            )
            rows = cursor.fetchall() or []
            return [_row_to_session(row) for row in rows]

    def update_session_status(
        self,
        session_id: str,
        status: PaymentSessionStatus,
    ) -> Optional[PaymentSessionRecord]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE payment_sessions
                SET status = %s, updated_at = NOW()
                WHERE stripe_session_id = %s
                RETURNING *
                """,
                (status.value, session_id),
            )
            row = cursor.fetchone()
            return _row_to_session(row) if row else None


class PostgresBillRepository(PostgresRepository):
    """Bills issued for bookings."""

    def get_bills_for_booking(self, booking_id: str) -> Sequence[Bill]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM bills
                WHERE booking_id = %s
                ORDER BY created_at DESC
                """,
                (booking_id,),
            )
            rows = cursor.fetchall() or []
            return [_row_to_bill(row) for row in rows]

    def update_bill_status(self, bill_id: str, status: BillStatus) -> Optional[Bill]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE bills
                SET status = %s, updated_at = NOW()
                WHERE id = %s
                RETURNING *
                """,
                (status.value, bill_id),
            )
            row = cursor.fetchone()
            return _row_to_bill(row) if row else None

    def mark_bill_refunded(self, bill_id: str, *, refund_id: str, reason: Optional[str]) -> Optional[Bill]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE bills
                SET status = %s,
                    stripe_refund_id = %s,
                    refund_reason = %s,
                    refunded_at = NOW(),
                    updated_at = NOW()
                WHERE id = %s
                RETURNING *
                """,
                (BillStatus.REFUNDED.value, refund_id, reason, bill_id),
            )
            row = cursor.fetchone()
            return _row_to_bill(row) if row else None


__all__ = [
    "PostgresBillRepository",
    "PostgresPaymentAccountRepository",
    "PostgresPaymentSessionRepository",
    "managed_connection",
]
