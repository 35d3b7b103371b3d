"""
Request-scoped correlation IDs.

A short id is attached to every request, log record and error response so a
student reporting "error abc123de" can be traced to the exact log lines.
"""

import uuid
from contextvars import ContextVar

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """
    Generate a short correlation ID.

    Returns:
        8-character lowercase hexadecimal string.
    """
    return uuid.uuid4().hex[:8]


def get_correlation_id() -> str:
    """Return the current context's correlation ID, or "" outside a request."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Bind a correlation ID to the current context.

    Args:
        correlation_id: Incoming X-Correlation-ID header value or a fresh id.
    """
    correlation_id_var.set(correlation_id)
