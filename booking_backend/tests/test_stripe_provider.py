from __future__ import annotations

from typing import Any, Dict, List

import pytest
import stripe

from booking_backend.app.config import load_app_config
from booking_backend.app.payments import ProviderError
from booking_backend.app.payments.stripe_provider import StripePaymentProvider
from booking_backend.app.services.payments import LocalSandboxPaymentProvider, create_payment_provider


def _checkout_kwargs(**overrides) -> Dict[str, Any]:
    values: Dict[str, Any] = {
        "connected_account_id": "acct_123",
        "amount": 4550,
        "currency": "eur",
        "product_name": "Consultation with Dr. Ruiz",
        "product_description": "Consultation on 04 March 2030 at 11:00",
        "customer_email": "ana@example.com",
        "metadata": {"booking_id": "booking-1"},
        "success_url": "https://app.test/payment/success?booking_id=booking-1",
        "cancel_url": "https://app.test/payment/cancelled",
        "idempotency_key": "booking:booking-1:4550:2030-03-04T10:00:00Z",
    }
    values.update(overrides)
    return values


@pytest.fixture
def provider(monkeypatch) -> StripePaymentProvider:
    monkeypatch.setattr(stripe, "max_network_retries", stripe.max_network_retries)
    return StripePaymentProvider("sk_test_123", max_network_retries=2)


def test_checkout_session_is_created_on_connected_account(monkeypatch, provider) -> None:
    calls: List[Dict[str, Any]] = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return {"id": "cs_live_1", "url": "https://checkout.stripe.com/c/pay/cs_live_1", "expires_at": 1900000000}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    session = provider.create_checkout_session(**_checkout_kwargs())

    assert session.session_id == "cs_live_1"
    assert session.checkout_url == "https://checkout.stripe.com/c/pay/cs_live_1"
    assert int(session.expires_at.timestamp()) == 1900000000
    assert stripe.max_network_retries == 2

    call = calls[0]
    assert call["api_key"] == "sk_test_123"
    assert call["stripe_account"] == "acct_123"
    assert call["idempotency_key"] == "booking:booking-1:4550:2030-03-04T10:00:00Z"
    assert call["mode"] == "payment"
    assert call["customer_email"] == "ana@example.com"
    assert call["line_items"] == [
        {
            "price_data": {
                "currency": "eur",
                "product_data": {
                    "name": "Consultation with Dr. Ruiz",
                    "description": "Consultation on 04 March 2030 at 11:00",
                },
                "unit_amount": 4550,
            },
            "quantity": 1,
        }
    ]


def test_stripe_errors_are_wrapped(monkeypatch, provider) -> None:
    def fake_create(**kwargs):
        raise stripe.CardError("Your card was declined.", param=None, code="card_declined")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    with pytest.raises(ProviderError) as excinfo:
        provider.create_checkout_session(**_checkout_kwargs())

    assert excinfo.value.code == "provider_error"
    assert excinfo.value.detail["provider_code"] == "card_declined"
    assert "declined" in excinfo.value.detail["details"]


def test_expire_passes_connected_account(monkeypatch, provider) -> None:
    calls: List[tuple] = []

    def fake_expire(session_id, **kwargs):
        calls.append((session_id, kwargs))

    monkeypatch.setattr(stripe.checkout.Session, "expire", fake_expire)

    provider.expire_checkout_session("cs_1", connected_account_id="acct_123")
    provider.expire_checkout_session("cs_2")

    assert calls == [
        ("cs_1", {"api_key": "sk_test_123", "stripe_account": "acct_123"}),
        ("cs_2", {"api_key": "sk_test_123"}),
    ]


def test_refund_normalizes_reason(monkeypatch, provider) -> None:
    calls: List[Dict[str, Any]] = []

    def fake_refund(**kwargs):
        calls.append(kwargs)
        return {"id": "re_1"}

    monkeypatch.setattr(stripe.Refund, "create", fake_refund)

    refund_id = provider.create_refund(
        "pi_123",
        connected_account_id="acct_123",
        reason="client changed their mind",
        metadata={"booking_id": "booking-1"},
    )

    assert refund_id == "re_1"
    assert calls[0]["payment_intent"] == "pi_123"
    assert calls[0]["reason"] == "requested_by_customer"
    assert calls[0]["stripe_account"] == "acct_123"


def test_refund_falls_back_to_platform_when_intent_missing(monkeypatch, provider) -> None:
    calls: List[Dict[str, Any]] = []

    def fake_refund(**kwargs):
        calls.append(kwargs)
        if "stripe_account" in kwargs:
            raise stripe.InvalidRequestError("No such payment_intent", param="payment_intent", code="resource_missing")
        return {"id": "re_platform"}

    monkeypatch.setattr(stripe.Refund, "create", fake_refund)

    refund_id = provider.create_refund(
        "pi_123",
        connected_account_id="acct_123",
        reason="duplicate",
        metadata={},
    )

    assert refund_id == "re_platform"
    assert len(calls) == 2
    assert calls[1]["reason"] == "duplicate"
    assert "stripe_account" not in calls[1]


def test_refund_other_invalid_requests_are_wrapped(monkeypatch, provider) -> None:
    def fake_refund(**kwargs):
        raise stripe.InvalidRequestError("Charge already refunded", param=None, code="charge_already_refunded")

    monkeypatch.setattr(stripe.Refund, "create", fake_refund)

    with pytest.raises(ProviderError):
        provider.create_refund("pi_123", connected_account_id="acct_123", reason=None, metadata={})


def test_provider_requires_api_key() -> None:
    with pytest.raises(ValueError):
        StripePaymentProvider("")


def test_create_payment_provider_selects_by_configuration(monkeypatch) -> None:
    monkeypatch.setattr(stripe, "max_network_retries", stripe.max_network_retries)

    assert isinstance(create_payment_provider(load_app_config({})), LocalSandboxPaymentProvider)
    assert isinstance(
        create_payment_provider(load_app_config({"STRIPE_SECRET_KEY": "sk_test_123"})),
        StripePaymentProvider,
    )


def test_sandbox_provider_returns_local_checkout_urls() -> None:
    sandbox = LocalSandboxPaymentProvider()

    session = sandbox.create_checkout_session(**_checkout_kwargs())

    assert session.session_id.startswith("cs_")
    assert session.checkout_url == f"https://payments.local/checkout/{session.session_id}"
    assert sandbox.create_refund("pi_1", connected_account_id=None, reason=None, metadata={}).startswith("re_")
