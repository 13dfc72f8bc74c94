"""
Audit log of user-visible actions (uploads, analysis runs, system events).

Newest entry first, capped at AUDIT_MAX_ENTRIES, kept as one JSON
document in the key-value store. Recording is fire-and-forget: a storage
failure is logged and counted, never raised into the pipeline.
"""

from __future__ import annotations

import json
import threading
import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from portfolioq.config import AUDIT_MAX_ENTRIES, AUDIT_STORAGE_KEY
from portfolioq.evaluation.models import utc_now
from portfolioq.infrastructure.kv_store import KeyValueStore
from portfolioq.observability.logging import get_logger
from portfolioq.observability.telemetry import counter

logger = get_logger(__name__)


class AuditAction(str, Enum):
    UPLOAD = "UPLOAD"
    ANALYSIS = "ANALYSIS"
    REPORT = "REPORT"
    EXPORT = "EXPORT"
    SYSTEM = "SYSTEM"


class AuditEntry(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=utc_now)
    action: AuditAction
    details: str


_ENTRY_LIST = TypeAdapter(list[AuditEntry])


class AuditLog:
    def __init__(self, kv: KeyValueStore, max_entries: int = AUDIT_MAX_ENTRIES) -> None:
        self._kv = kv
        self._max_entries = max_entries
        self._lock = threading.Lock()

    def record(self, action: AuditAction, details: str) -> None:
        """Prepend an entry. Never raises."""
        try:
            with self._lock:
                entries = self._load()
                entries.insert(0, AuditEntry(action=action, details=details))
                del entries[self._max_entries :]
                self._save(entries)
        except Exception as e:
            counter("audit.write_failed")
            logger.warning("Failed to record audit entry (%s): %s", action, e)

    def entries(self) -> list[AuditEntry]:
        """All entries, newest first. Unreadable storage yields an empty list."""
        try:
            with self._lock:
                return self._load()
        except Exception as e:
            counter("audit.read_failed")
            logger.warning("Failed to read audit log: %s", e)
            return []

    def clear(self) -> None:
        try:
            with self._lock:
                self._kv.delete(AUDIT_STORAGE_KEY)
        except Exception as e:
            counter("audit.write_failed")
            logger.warning("Failed to clear audit log: %s", e)

    def _load(self) -> list[AuditEntry]:
        raw = self._kv.get(AUDIT_STORAGE_KEY)
        if not raw:
            return []
        try:
            return _ENTRY_LIST.validate_json(raw)
        except ValidationError as e:
            counter("audit.corrupt")
            logger.warning("Discarding unreadable audit log: %s", e)
            return []

    def _save(self, entries: list[AuditEntry]) -> None:
        payload = json.dumps([e.model_dump(mode="json") for e in entries], ensure_ascii=False)
        self._kv.set(AUDIT_STORAGE_KEY, payload)
