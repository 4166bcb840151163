"""Signed booking management links (cancel and reschedule)."""

from .models import ManageAction, ManageToken
from .signer import ManageLinkSigner

__all__ = [
    "ManageAction",
    "ManageLinkSigner",
    "ManageToken",
]
