"""Application configuration for manage links and payments."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional


@dataclass(frozen=True)
class AppConfig:
    """Settings shared by the signer, the payment provider and the routes."""

    manage_link_secret: Optional[str]
    app_base_url: str
    stripe_secret_key: Optional[str]
    payments_currency: str
    payments_timezone: str
    stripe_max_network_retries: int

    @property
    def success_url_base(self) -> str:
        return f"{self.app_base_url}/payment/success"

    @property
    def cancel_url(self) -> str:
        return f"{self.app_base_url}/payment/cancelled"


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def load_app_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load :class:`AppConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    secret = env_mapping.get("MANAGE_LINK_SECRET") or env_mapping.get("CRON_SECRET") or None
    app_base_url = env_mapping.get("APP_BASE_URL", "http://localhost:3000")
    currency = (env_mapping.get("PAYMENTS_CURRENCY") or "eur").strip().lower()
    if len(currency) != 3:
        raise ValueError(f"PAYMENTS_CURRENCY must be a 3 letter ISO code, got {currency!r}")

    return AppConfig(
        manage_link_secret=secret,
        app_base_url=app_base_url.rstrip("/"),
        stripe_secret_key=env_mapping.get("STRIPE_SECRET_KEY") or None,
        payments_currency=currency,
        payments_timezone=env_mapping.get("PAYMENTS_TIMEZONE", "Europe/Madrid"),
        stripe_max_network_retries=max(0, _to_int(env_mapping.get("STRIPE_MAX_NETWORK_RETRIES"), default=0)),
    )


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    return load_app_config()


__all__ = ["AppConfig", "get_app_config", "load_app_config"]
