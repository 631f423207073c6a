"""
Audit helpers for the Storefront Platform
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)


def log_security_event(event_type: str, details: dict[str, Any], request_ip: str | None = None) -> None:
    """
    Log audit-worthy events (settled orders, reviewed redemptions, bonus credits).
    """
    logger.warning(f"🚨 [Security] {event_type}: {details} from IP: {request_ip}")
