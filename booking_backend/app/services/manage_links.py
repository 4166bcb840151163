"""Application wiring for the manage-link signer."""
from __future__ import annotations

import logging
from functools import lru_cache

from ..config import get_app_config
from ..manage_links import ManageLinkSigner

logger = logging.getLogger("manage_links")


@lru_cache(maxsize=1)
def get_manage_link_signer() -> ManageLinkSigner:
    """Return the process-wide signer.

    Called once during startup so a missing secret stops the process instead
    of failing individual requests.
    """

    config = get_app_config()
    try:
        return ManageLinkSigner(config.manage_link_secret or "")
    except ValueError as exc:
        logger.critical("MANAGE_LINK_SECRET is not set; manage links cannot be signed")
        raise RuntimeError("MANAGE_LINK_SECRET is not set") from exc


__all__ = ["get_manage_link_signer"]
