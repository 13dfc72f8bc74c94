"""Unit tests for client-facing error sanitization"""

from __future__ import annotations

import pytest

from portfolioq.utils.error_sanitizer import GENERIC_MESSAGES, sanitize_error_message


def test_short_conflict_message_passes_through():
    message = "subject 3f2b9c1e-8d4a-4c55-9e21-0b7f6a1d2c3e has no evidence files in this session"

    assert sanitize_error_message(message, 409) == message


@pytest.mark.parametrize(
    "message",
    [
        "sqlite3.OperationalError: database is locked",
        "Invalid key AIzaSyA1234567890abcdefghij",
        'File "/srv/portfolioq/evaluation/service.py", line 42',
        "failed in portfolioq.evaluation.service",
    ],
)
def test_sensitive_messages_become_generic(message):
    assert sanitize_error_message(message, 409) == GENERIC_MESSAGES[409]


def test_server_errors_never_pass_through():
    assert sanitize_error_message("boom", 500) == GENERIC_MESSAGES[500]
    assert sanitize_error_message("", 400) == GENERIC_MESSAGES[400]
