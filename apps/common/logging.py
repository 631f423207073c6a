"""
Logging infrastructure for the Storefront Platform.

- RequestIDFilter: injects the current request id and user into every record
- StructuredLogAdapter: attaches structured context to log messages
- get_logger(): convenience constructor for the adapter

Usage:
    from apps.common.logging import get_logger

    log = get_logger(__name__, component="checkout")
    log.info("Order settled", order_id=order.id)
"""

from __future__ import annotations

import logging
import threading
from typing import Any

# Thread-local storage for request context
_request_context = threading.local()

_CONTEXT_FIELDS = ("request_id", "user_id", "user_email")


# =============================================================================
# REQUEST CONTEXT FUNCTIONS
# =============================================================================


def set_request_context(**kwargs: Any) -> None:
    """Set request context for the current thread"""
    for key, value in kwargs.items():
        setattr(_request_context, key, value)


def bind_user(user: Any) -> None:
    """Record the authenticated user on the current request context."""
    set_request_context(user_id=user.pk, user_email=getattr(user, "email", None))


def get_request_context() -> dict[str, Any]:
    return {
        "request_id": getattr(_request_context, "request_id", "-"),
        "user_id": getattr(_request_context, "user_id", None),
        "user_email": getattr(_request_context, "user_email", None),
    }


def clear_request_context() -> None:
    """Clear request context for the current thread"""
    for attr in _CONTEXT_FIELDS:
        if hasattr(_request_context, attr):
            delattr(_request_context, attr)


# =============================================================================
# REQUEST ID FILTER - Structured Logging with Request Correlation
# =============================================================================


class RequestIDFilter(logging.Filter):
    """
    Add request ID and context to log records.

    Records emitted outside a request (django-q2 workers, management
    commands) get "-" as their request id.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = getattr(_request_context, "request_id", "-")
        if not hasattr(record, "user_id"):
            record.user_id = getattr(_request_context, "user_id", None)
        if not hasattr(record, "user_email"):
            record.user_email = getattr(_request_context, "user_email", None)
        return True


class StructuredLogAdapter(logging.LoggerAdapter):
    """
    Log adapter that adds structured context to all log messages.

    Usage:
        logger = StructuredLogAdapter(logging.getLogger(__name__), {"component": "loyalty"})
        logger.info("Points credited", user_id=42)
    """

    def process(self, msg: str, kwargs: Any) -> tuple[str, Any]:
        extra = dict(kwargs.get("extra") or {})
        extra.update(self.extra or {})

        # Any non-logging keyword becomes a structured field
        for key in list(kwargs):
            if key not in ("exc_info", "stack_info", "stacklevel", "extra"):
                extra[key] = kwargs.pop(key)

        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str, **context: Any) -> StructuredLogAdapter:
    """
    Get a structured logger with context.

    Args:
        name: Logger name (usually __name__)
        **context: Additional context to include in all log messages
    """
    return StructuredLogAdapter(logging.getLogger(name), context)
