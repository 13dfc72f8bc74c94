"""
Error message sanitization utility.

Prevents information leakage (paths, SQL errors, API keys) by sanitizing
error messages before returning them to clients.
"""

from __future__ import annotations

import re

from portfolioq.observability.logging import get_logger

logger = get_logger(__name__)

# Patterns that might leak sensitive information
SENSITIVE_PATTERNS = [
    # File paths
    r"/[^\s]+\.py",
    r"[A-Za-z]:\\[^\s]+",
    # Stack trace indicators
    r"Traceback \(most recent call last\)",
    r"File \".*\"",
    r"line \d+",
    # Database errors
    r"sqlite3?\.",
    r"no such table",
    # API keys / secrets
    r"AIza[0-9A-Za-z_-]{10,}",
    r"[A-Za-z0-9_]{32,}",
    r"Bearer [A-Za-z0-9._-]+",
    # Internal module names
    r"portfolioq\.[a-z_.]+",
]

GENERIC_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    404: "Resource not found.",
    409: "The request conflicts with the current state.",
    422: "Invalid data format.",
    500: "An internal error occurred. Please try again later.",
}

# Client errors whose own message is shown when it is short and clean
_PASSTHROUGH_STATUSES = (400, 409)


def sanitize_error_message(message: str, status_code: int = 500) -> str:
    """
    Sanitize an error message to prevent information leakage.

    Returns:
        The message itself for short, clean 400/409 messages; otherwise the
        generic message for the status code
    """
    generic = GENERIC_MESSAGES.get(status_code, "An error occurred.")
    if not message:
        return generic

    for pattern in SENSITIVE_PATTERNS:
        if re.search(pattern, message, re.IGNORECASE):
            logger.warning("Sanitized sensitive error pattern: %s", pattern)
            return generic

    if (
        status_code in _PASSTHROUGH_STATUSES
        and len(message) < 120
        and not any(c in message for c in ["{", "}", "[", "]", "\n"])
    ):
        return message

    return generic
