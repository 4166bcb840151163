"""Email configuration helpers."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass(frozen=True)
class EmailConfig:
    """Sender identity and transport settings for booking emails."""

    provider_name: str
    from_email: str
    reply_to: Optional[str]
    smtp_host: str
    smtp_port: int
    smtp_username: Optional[str]
    smtp_password: Optional[str]
    smtp_use_tls: bool
    smtp_timeout_seconds: float


def _to_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _to_number(value: Optional[str], *, default, cast):
    if value is None or value.strip() == "":
        return default
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected {cast.__name__} value, got {value!r}") from exc


def load_email_config(env: Optional[Mapping[str, str]] = None) -> EmailConfig:
    """Load :class:`EmailConfig` from ``EMAIL_*`` and ``SMTP_*`` variables."""

    env_mapping = os.environ if env is None else env

    return EmailConfig(
        provider_name=(env_mapping.get("EMAIL_PROVIDER") or "dev").strip().lower(),
        from_email=env_mapping.get("EMAIL_FROM") or "citas@example.com",
        reply_to=env_mapping.get("EMAIL_REPLY_TO") or None,
        smtp_host=env_mapping.get("SMTP_HOST", "localhost"),
        smtp_port=_to_number(env_mapping.get("SMTP_PORT"), default=587, cast=int),
        smtp_username=env_mapping.get("SMTP_USER") or None,
        smtp_password=env_mapping.get("SMTP_PASS") or None,
        smtp_use_tls=_to_bool(env_mapping.get("SMTP_USE_TLS"), default=True),
        smtp_timeout_seconds=max(1.0, _to_number(env_mapping.get("SMTP_TIMEOUT"), default=30.0, cast=float)),
    )


__all__ = ["EmailConfig", "load_email_config"]
