"""Outbound email configuration, providers and rendering."""

from .config import EmailConfig, load_email_config
from .providers import (
    DevPrintProvider,
    EmailProvider,
    SMTPProvider,
    create_email_provider,
)
from .renderer import render_booking_manage_links, render_consultation_bill

__all__ = [
    "DevPrintProvider",
    "EmailConfig",
    "EmailProvider",
    "SMTPProvider",
    "create_email_provider",
    "load_email_config",
    "render_booking_manage_links",
    "render_consultation_bill",
]
