"""User-supplied Gemini API key.

The key the user enters is kept in the key-value store under
API_KEY_STORAGE_KEY. When none has been stored, the GOOGLE_API_KEY
environment variable is used so headless deployments work unchanged.
"""

from __future__ import annotations

import os

from portfolioq.config import API_KEY_STORAGE_KEY
from portfolioq.infrastructure.kv_store import KeyValueStore
from portfolioq.observability.logging import get_logger

logger = get_logger(__name__)


class CredentialStore:
    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    def get_api_key(self) -> str | None:
        # Read env fresh: dotenv may load after settings were imported
        return self._kv.get(API_KEY_STORAGE_KEY) or os.getenv("GOOGLE_API_KEY") or None

    def has_api_key(self) -> bool:
        return bool(self.get_api_key())

    def set_api_key(self, api_key: str) -> None:
        api_key = api_key.strip()
        if not api_key:
            raise ValueError("api_key cannot be empty")
        self._kv.set(API_KEY_STORAGE_KEY, api_key)
        logger.info("Stored Gemini API key (length=%d)", len(api_key))

    def clear(self) -> None:
        self._kv.delete(API_KEY_STORAGE_KEY)
        logger.info("Cleared stored Gemini API key")
