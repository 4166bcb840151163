"""Errors raised inside the checkout orchestrator."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping, Optional

from .models import CheckoutErrorKind, CheckoutFailure


@dataclass
class CheckoutError(Exception):
    """Base class for failures converted into :class:`CheckoutFailure`."""

    code: str
    message: str
    detail: Optional[Mapping[str, Any]] = None

    kind: ClassVar[CheckoutErrorKind] = CheckoutErrorKind.ORCHESTRATION_ERROR

    def __post_init__(self) -> None:
        super().__init__(self.message)

    @property
    def payload(self) -> Mapping[str, Any]:
        """Serialized representation suitable for JSON responses."""

        base: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail:
            base.update(self.detail)
        return base

    def to_failure(self) -> CheckoutFailure:
        return CheckoutFailure(
            kind=self.kind,
            code=self.code,
            message=self.message,
            detail=dict(self.detail or {}),
        )


@dataclass
class ValidationError(CheckoutError):
    """Missing or malformed checkout input."""

    kind: ClassVar[CheckoutErrorKind] = CheckoutErrorKind.VALIDATION_ERROR


@dataclass
class AccountNotFoundError(CheckoutError):
    """The practitioner has no connected payment account."""

    kind: ClassVar[CheckoutErrorKind] = CheckoutErrorKind.ACCOUNT_NOT_FOUND


@dataclass
class AccountNotReadyError(CheckoutError):
    """The connected account exists but cannot accept payments yet."""

    kind: ClassVar[CheckoutErrorKind] = CheckoutErrorKind.ACCOUNT_NOT_READY


@dataclass
class ProviderError(CheckoutError):
    """Wraps any failure reported by the payment provider."""

    kind: ClassVar[CheckoutErrorKind] = CheckoutErrorKind.PROVIDER_ERROR


@dataclass
class PersistenceError(CheckoutError):
    """The provider session exists but its record could not be written."""

    kind: ClassVar[CheckoutErrorKind] = CheckoutErrorKind.PERSISTENCE_ERROR


@dataclass
class OrchestrationError(CheckoutError):
    """Unexpected failure while coordinating the checkout."""

    kind: ClassVar[CheckoutErrorKind] = CheckoutErrorKind.ORCHESTRATION_ERROR


__all__ = [
    "AccountNotFoundError",
    "AccountNotReadyError",
    "CheckoutError",
    "OrchestrationError",
    "PersistenceError",
    "ProviderError",
    "ValidationError",
]
