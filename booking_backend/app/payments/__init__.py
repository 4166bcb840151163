"""Consultation payment domain: checkout orchestration and payment lifecycle."""

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
    CheckoutErrorKind,
    CheckoutFailure,
    CheckoutRequest,
    CheckoutResult,
    PaymentAccountStatus,
    PaymentCancellationResult,
    PaymentSessionRecord,
    PaymentSessionStatus,
    ProviderCheckoutSession,
    RefundResult,
)
from .service import (
    BillRepository,
    PaymentAccountRepository,
    PaymentOrchestrationService,
    PaymentProvider,
    PaymentSessionRepository,
)

__all__ = [
    "AccountNotFoundError",
    "AccountNotReadyError",
    "Bill",
    "BillRepository",
    "BillStatus",
    "CheckoutError",
    "CheckoutErrorKind",
    "CheckoutFailure",
    "CheckoutRequest",
    "CheckoutResult",
    "OrchestrationError",
    "PaymentAccountRepository",
    "PaymentAccountStatus",
    "PaymentCancellationResult",
    "PaymentOrchestrationService",
    "PaymentProvider",
    "PaymentSessionRecord",
    "PaymentSessionRepository",
    "PaymentSessionStatus",
    "PersistenceError",
    "ProviderCheckoutSession",
    "ProviderError",
    "RefundResult",
    "ValidationError",
]
