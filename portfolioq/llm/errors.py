"""Exceptions raised by the Gemini call layer."""

from __future__ import annotations


class LLMCredentialError(RuntimeError):
    """The API key is missing or was rejected (401/403, invalid key).

    Distinct from every other failure: it halts the batch instead of
    failing a single subject.
    """


class LLMCallError(RuntimeError):
    """Any other remote failure: timeout, quota, network, malformed output."""
