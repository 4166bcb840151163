"""HMAC signer for self-authorizing booking management links."""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import re
from typing import Union

from .models import ManageAction, ManageToken

_URLSAFE_ALPHABET = re.compile(r"[A-Za-z0-9_-]+")


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64url_decode(value: str) -> bytes:
    if not _URLSAFE_ALPHABET.fullmatch(value):
        raise ValueError("signature is not base64url encoded")
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def _coerce_action(action: Union[ManageAction, str]) -> ManageAction:
    if isinstance(action, ManageAction):
        return action
    return ManageAction(action)


class ManageLinkSigner:
    """Signs and verifies ``booking_id:email:action`` triples.

    Signatures are deterministic (no nonce or expiry) so a link stays valid
    until the booking state makes the action meaningless or the secret is
    rotated. Rotating the secret invalidates every outstanding link.
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("secret must be provided")
        self._secret = secret.encode("utf-8")

    def _digest(self, booking_id: str, email: str, action: ManageAction) -> bytes:
        message = f"{booking_id}:{email}:{action.value}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).digest()

    def sign(self, booking_id: str, email: str, action: Union[ManageAction, str]) -> str:
        """Return the URL-safe, unpadded signature for a manage link."""

        if not booking_id:
            raise ValueError("booking_id must be provided")
        if not email:
            raise ValueError("email must be provided")
        return _b64url_encode(self._digest(booking_id, email, _coerce_action(action)))

    def verify(
        self,
        signature: object,
        booking_id: str,
        email: str,
        action: Union[ManageAction, str],
    ) -> bool:
        """Return ``True`` only when ``signature`` matches the triple.

        Any malformed input yields ``False``; nothing is raised to the caller.
        """

        if not isinstance(signature, str) or not signature or not booking_id or not email:
            return False
        try:
            resolved = _coerce_action(action)
            provided = _b64url_decode(signature)
        except (ValueError, binascii.Error, UnicodeError):
            return False
        if _b64url_encode(provided) != signature:
            return False
        expected = self._digest(booking_id, email, resolved)
        if len(provided) != len(expected):
            return False
        return hmac.compare_digest(provided, expected)

    def issue_token(self, booking_id: str, email: str, action: Union[ManageAction, str]) -> ManageToken:
        resolved = _coerce_action(action)
        return ManageToken(
            booking_id=booking_id,
            recipient_email=email,
            action=resolved,
            signature=self.sign(booking_id, email, resolved),
        )

    def build_manage_url(
        self,
        base_url: str,
        action: Union[ManageAction, str],
        booking_id: str,
        email: str,
    ) -> str:
        """Compose ``{base}/{reschedulings|cancellations}/{id}?sig=...``."""

        resolved = _coerce_action(action)
        signature = self.sign(booking_id, email, resolved)
        return f"{base_url.rstrip('/')}/{resolved.path_segment}/{booking_id}?sig={signature}"


__all__ = ["ManageLinkSigner"]
