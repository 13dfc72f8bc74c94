"""Unit tests for the audit log"""

from __future__ import annotations

from unittest.mock import MagicMock

from portfolioq.config import AUDIT_STORAGE_KEY
from portfolioq.observability.telemetry import get_counter
from portfolioq.storage.audit import AuditAction, AuditLog


def test_entries_are_newest_first(kv):
    log = AuditLog(kv)
    log.record(AuditAction.UPLOAD, "first")
    log.record(AuditAction.ANALYSIS, "second")

    entries = log.entries()

    assert [e.details for e in entries] == ["second", "first"]
    assert entries[0].action == AuditAction.ANALYSIS
    assert entries[0].id != entries[1].id


def test_log_is_capped(kv):
    log = AuditLog(kv, max_entries=3)
    for i in range(5):
        log.record(AuditAction.SYSTEM, f"event {i}")

    assert [e.details for e in log.entries()] == ["event 4", "event 3", "event 2"]


def test_entries_survive_reopen(kv):
    AuditLog(kv).record(AuditAction.EXPORT, "تصدير")

    assert AuditLog(kv).entries()[0].details == "تصدير"


def test_storage_failure_is_swallowed():
    broken = MagicMock()
    broken.get.return_value = None
    broken.set.side_effect = OSError("disk full")
    log = AuditLog(broken)

    log.record(AuditAction.UPLOAD, "lost")

    assert get_counter("audit.write_failed") == 1


def test_corrupt_log_reads_as_empty(kv):
    kv.set(AUDIT_STORAGE_KEY, "{not json")
    log = AuditLog(kv)

    assert log.entries() == []
    log.record(AuditAction.SYSTEM, "fresh")
    assert [e.details for e in log.entries()] == ["fresh"]


def test_clear(kv):
    log = AuditLog(kv)
    log.record(AuditAction.SYSTEM, "x")

    log.clear()

    assert log.entries() == []
