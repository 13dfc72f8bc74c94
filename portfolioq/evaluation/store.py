"""
SubjectStore - the single owner of subject state.

Worker threads never mutate a Subject in place: every change goes through
transition() or update(), which validate it, swap in a copy under one
RLock and notify listeners. Concurrent tasks touch disjoint ids, and
readers always see whole snapshots.

When a key-value store is attached, every change is persisted as JSON
under SUBJECTS_STORAGE_KEY. Evidence handles are never written, and a
subject found `analyzing` on load is reset to `pending`: the run that
owned it is gone.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from typing import Any

from pydantic import TypeAdapter, ValidationError

from portfolioq.config import SUBJECTS_STORAGE_KEY
from portfolioq.evaluation.grouping import SubjectGroup
from portfolioq.evaluation.merge import MergeResult, merge_subjects
from portfolioq.evaluation.models import Subject, SubjectStatus, check_transition, utc_now
from portfolioq.infrastructure.kv_store import KeyValueStore
from portfolioq.observability.logging import get_logger
from portfolioq.observability.telemetry import counter

logger = get_logger(__name__)

SubjectListener = Callable[[Subject], None]

_SUBJECT_LIST = TypeAdapter(list[Subject])


class SubjectNotFoundError(KeyError):
    """Raised when a subject id is not in the active set."""

    def __init__(self, subject_id: str):
        super().__init__(subject_id)
        self.subject_id = subject_id

    def __str__(self) -> str:
        return f"subject not found: {self.subject_id}"


class SubjectStore:
    def __init__(self, kv: KeyValueStore | None = None) -> None:
        self._kv = kv
        self._lock = threading.RLock()
        self._subjects: dict[str, Subject] = {}
        self._listeners: list[SubjectListener] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self) -> list[Subject]:
        with self._lock:
            return list(self._subjects.values())

    def get(self, subject_id: str) -> Subject:
        with self._lock:
            try:
                return self._subjects[subject_id]
            except KeyError:
                raise SubjectNotFoundError(subject_id) from None

    def find_by_name(self, name: str) -> Subject | None:
        with self._lock:
            return next((s for s in self._subjects.values() if s.name == name), None)

    def count_by_status(self, status: SubjectStatus) -> int:
        with self._lock:
            return sum(1 for s in self._subjects.values() if s.status == status)

    def __len__(self) -> int:
        with self._lock:
            return len(self._subjects)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_listener(self, listener: SubjectListener) -> None:
        """Called with the new snapshot after every per-subject change, under the lock."""
        with self._lock:
            self._listeners.append(listener)

    def transition(self, subject_id: str, status: SubjectStatus, **fields: Any) -> Subject:
        """
        Move a subject to `status`, applying extra field updates atomically.

        Raises:
            SubjectNotFoundError: Unknown id
            InvalidTransitionError: Transition not allowed from the current status
        """
        with self._lock:
            current = self.get(subject_id)
            check_transition(subject_id, SubjectStatus(current.status), status)
            updated = current.model_copy(
                update={**fields, "status": status, "updated_at": utc_now()}
            )
            self._subjects[subject_id] = updated
            self._changed(updated)
            return updated

    def update(self, subject_id: str, **fields: Any) -> Subject:
        """Update fields other than status."""
        if "status" in fields:
            raise ValueError("use transition() to change status")
        with self._lock:
            current = self.get(subject_id)
            updated = current.model_copy(update={**fields, "updated_at": utc_now()})
            self._subjects[subject_id] = updated
            self._changed(updated)
            return updated

    def merge(self, groups: dict[str, SubjectGroup]) -> MergeResult:
        """Merge an upload into the active set as one atomic step."""
        with self._lock:
            result = merge_subjects(list(self._subjects.values()), groups)
            self._subjects = {s.id: s for s in result.subjects}
            for subject_id in result.new_ids + result.updated_ids:
                self._notify(self._subjects[subject_id])
            self.save()
            return result

    def reset(self) -> None:
        """Drop every subject, in memory and in persistence."""
        with self._lock:
            self._subjects = {}
            if self._kv is not None:
                self._kv.delete(SUBJECTS_STORAGE_KEY)
        logger.info("Subject store reset")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> None:
        if self._kv is None:
            return
        with self._lock:
            payload = json.dumps(
                [s.model_dump(mode="json") for s in self._subjects.values()],
                ensure_ascii=False,
            )
            self._kv.set(SUBJECTS_STORAGE_KEY, payload)

    def load(self) -> int:
        """
        Replace the active set with the persisted one.

        Returns:
            Number of subjects loaded
        """
        if self._kv is None:
            return 0
        raw = self._kv.get(SUBJECTS_STORAGE_KEY)
        if not raw:
            return 0

        try:
            subjects = _SUBJECT_LIST.validate_json(raw)
        except ValidationError as e:
            counter("store.corrupt")
            logger.error("Persisted subjects are unreadable, starting empty: %s", e)
            return 0
        restored = 0
        with self._lock:
            self._subjects = {}
            for subject in subjects:
                if subject.status == SubjectStatus.ANALYZING:
                    subject = subject.model_copy(update={"status": SubjectStatus.PENDING})
                    restored += 1
                self._subjects[subject.id] = subject

        if restored:
            counter("store.analyzing_restored")
            logger.info("Reset %d interrupted subjects to pending", restored)
        logger.info("Loaded %d subjects from persistence", len(subjects))
        return len(subjects)

    def _changed(self, subject: Subject) -> None:
        self._notify(subject)
        self.save()

    def _notify(self, subject: Subject) -> None:
        for listener in self._listeners:
            listener(subject)
