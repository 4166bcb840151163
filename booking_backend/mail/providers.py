"""Delivery backends for booking emails."""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Dict, Optional

from .config import EmailConfig

logger = logging.getLogger("email")


class EmailProvider:
    """Sends one rendered email; subclasses implement ``send_email``."""

    name = "base"

    def __init__(self, *, from_email: str, reply_to: Optional[str] = None) -> None:
        self.from_email = from_email
        self.reply_to = reply_to

    def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        raise NotImplementedError

    def describe(self) -> Dict[str, str]:
        return {"email_provider": self.name, "email_sender": self.from_email}


class DevPrintProvider(EmailProvider):
    """Logs emails instead of delivering them."""

    name = "dev"

    def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        logger.info(
            "Dev email to %s: %s",
            to,
            subject,
            extra={"email_recipient": to, "email_sender": self.from_email},
        )
        logger.debug("Dev email body\n%s", text_body)


class SMTPProvider(EmailProvider):
    name = "smtp"

    def __init__(
        self,
        *,
        from_email: str,
        reply_to: Optional[str],
        host: str,
        port: int,
        username: Optional[str],
        password: Optional[str],
        use_tls: bool,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(from_email=from_email, reply_to=reply_to)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def build_message(self, to: str, subject: str, html_body: str, text_body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_email
        message["To"] = to
        message["Subject"] = subject
        if self.reply_to:
            message["Reply-To"] = self.reply_to
        message.set_content(text_body)
        message.add_alternative(html_body, subtype="html")
        return message

    def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        message = self.build_message(to, subject, html_body, text_body)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as client:
            if self.use_tls:
                client.starttls()
            if self.username and self.password:
                client.login(self.username, self.password)
            client.send_message(message)


def create_email_provider(config: EmailConfig) -> EmailProvider:
    if config.provider_name == "smtp":
        return SMTPProvider(
            from_email=config.from_email,
            reply_to=config.reply_to,
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            timeout=config.smtp_timeout_seconds,
        )
    if config.provider_name != "dev":
        logger.warning("Unknown EMAIL_PROVIDER %r, falling back to dev provider", config.provider_name)
    return DevPrintProvider(from_email=config.from_email, reply_to=config.reply_to)


__all__ = [
    "DevPrintProvider",
    "EmailProvider",
    "SMTPProvider",
    "create_email_provider",
]
