"""Evaluation service layer - facade between API/CLI and the pipeline.

Owns the subject store, the credential store, the audit log and the one
scheduler. Runs are serialized: an upload received while a run is in
progress is merged immediately (its subjects show up as pending) and its
analysis starts when the current run finishes.
"""

from __future__ import annotations

import threading
from collections import Counter
from collections.abc import Sequence
from typing import Any

from portfolioq.config import ANALYSIS_CONCURRENCY
from portfolioq.evaluation.analyzer import PortfolioAnalyzer
from portfolioq.evaluation.criteria import Criterion, get_criteria
from portfolioq.evaluation.grouping import UploadEntry, group_by_subject
from portfolioq.evaluation.merge import MergeResult
from portfolioq.evaluation.models import InvalidTransitionError, Subject, SubjectStatus
from portfolioq.evaluation.scheduler import BatchScheduler, RunSummary
from portfolioq.evaluation.scoring import CompletedSummary, summarize_completed
from portfolioq.evaluation.store import SubjectStore
from portfolioq.evaluation.task import AnalysisTask, Analyzer, HaltSignal, ProgressCounter
from portfolioq.infrastructure.credentials import CredentialStore
from portfolioq.infrastructure.kv_store import KeyValueStore
from portfolioq.llm.gemini import clear_model_cache
from portfolioq.observability.logging import get_logger
from portfolioq.storage.audit import AuditAction, AuditLog

logger = get_logger(__name__)


class EvaluationConflictError(RuntimeError):
    """The request conflicts with the current state (HTTP 409)."""


class MissingEvidenceError(EvaluationConflictError):
    """Subject has no evidence handles in this session; it must be re-uploaded."""

    def __init__(self, subject_id: str):
        super().__init__(f"subject {subject_id} has no evidence files in this session")
        self.subject_id = subject_id


class EvaluationBusyError(EvaluationConflictError):
    """An analysis run is in progress."""


class EvaluationService:
    def __init__(
        self,
        kv: KeyValueStore,
        analyzer: Analyzer | None = None,
        criteria: Sequence[Criterion] | None = None,
        max_concurrency: int = ANALYSIS_CONCURRENCY,
    ) -> None:
        self.criteria = tuple(criteria) if criteria is not None else get_criteria()
        self.credentials = CredentialStore(kv)
        self.audit = AuditLog(kv)
        self.store = SubjectStore(kv)
        self.store.load()

        self.analyzer = analyzer or PortfolioAnalyzer(
            self.criteria, api_key_provider=self.credentials.get_api_key
        )
        self.halt = HaltSignal()
        self.progress_counter = ProgressCounter()
        self._task = AnalysisTask(
            self.store, self.analyzer, self.criteria, self.halt, self.progress_counter
        )
        self._scheduler = BatchScheduler(self._task, max_concurrency=max_concurrency)
        self._run_lock = threading.Lock()
        self._running = threading.Event()
        # Ids handed to schedule() whose run has not finished, queued runs included
        self._scheduled: Counter[str] = Counter()
        self._scheduled_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def ingest_upload(self, entries: Sequence[UploadEntry]) -> MergeResult:
        """Group and merge an upload. New subjects are pending afterwards."""
        groups = group_by_subject(list(entries))
        result = self.store.merge(groups)
        self.audit.record(
            AuditAction.UPLOAD,
            f"Uploaded {len(entries)} files: {len(result.new_ids)} new subjects, "
            f"{len(result.updated_ids)} updated",
        )
        return result

    def process_upload(self, entries: Sequence[UploadEntry]) -> RunSummary:
        """Ingest and analyze the new subjects, blocking until the run settles."""
        result = self.ingest_upload(entries)
        return self.schedule(result.new_ids)

    def submit_upload(self, entries: Sequence[UploadEntry]) -> MergeResult:
        """Ingest, then analyze the new subjects on a background thread."""
        result = self.ingest_upload(entries)
        if result.new_ids:
            thread = threading.Thread(
                target=self.schedule,
                args=(result.new_ids,),
                name="portfolioq-upload",
                daemon=True,
            )
            thread.start()
        return result

    def schedule(self, subject_ids: Sequence[str]) -> RunSummary:
        """Run the scheduler over subject_ids. One run at a time."""
        with self._scheduled_lock:
            self._scheduled.update(subject_ids)
        try:
            with self._run_lock:
                self._running.set()
                try:
                    self.halt.clear()
                    self.progress_counter.start(len(subject_ids))
                    summary = self._scheduler.run(subject_ids)
                finally:
                    self._running.clear()
        finally:
            with self._scheduled_lock:
                self._scheduled.subtract(subject_ids)
                self._scheduled = +self._scheduled

        if summary.total:
            self.audit.record(
                AuditAction.ANALYSIS,
                f"Analysis run: {summary.completed} completed, {summary.errors} failed, "
                f"{summary.reverted + summary.not_started} awaiting a valid API key",
            )
        if summary.halted:
            self.audit.record(AuditAction.SYSTEM, "Analysis halted: API key missing or invalid")
        return summary

    # ------------------------------------------------------------------
    # Re-analysis
    # ------------------------------------------------------------------

    def prepare_reanalysis(self, subject_ids: Sequence[str]) -> list[str]:
        """
        Clear results and move subjects back to pending.

        Pending subjects already waiting in a run are left to that run and
        are not returned.

        Raises:
            SubjectNotFoundError: Unknown id
            MissingEvidenceError: Subject was loaded from persistence without handles
            InvalidTransitionError: Subject is being analyzed
        """
        for subject_id in subject_ids:
            subject = self.store.get(subject_id)
            if not subject.has_evidence_handles():
                raise MissingEvidenceError(subject_id)
            if subject.status == SubjectStatus.ANALYZING:
                raise InvalidTransitionError(subject_id, subject.status, SubjectStatus.PENDING)

        scheduled = self._scheduled_ids()
        prepared = []
        for subject_id in subject_ids:
            subject = self.store.get(subject_id)
            if subject.status == SubjectStatus.PENDING:
                if subject_id in scheduled:
                    continue
            else:
                self.store.transition(
                    subject_id,
                    SubjectStatus.PENDING,
                    scores=None,
                    total_score=None,
                    summary=None,
                    predictions=None,
                )
            prepared.append(subject_id)
        return prepared

    def reanalyze(self, subject_ids: Sequence[str]) -> RunSummary:
        return self.schedule(self.prepare_reanalysis(subject_ids))

    def pending_retry_ids(self) -> list[str]:
        """
        Pending subjects that still hold evidence handles (e.g. reverted by a
        halt), excluding those already waiting in a run.
        """
        scheduled = self._scheduled_ids()
        return [
            s.id
            for s in self.store.list()
            if s.status == SubjectStatus.PENDING
            and s.has_evidence_handles()
            and s.id not in scheduled
        ]

    def retry_pending(self) -> RunSummary:
        return self.schedule(self.pending_retry_ids())

    def _scheduled_ids(self) -> set[str]:
        with self._scheduled_lock:
            return set(self._scheduled)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def subjects(self) -> list[Subject]:
        return self.store.list()

    def get_subject(self, subject_id: str) -> Subject:
        return self.store.get(subject_id)

    def progress(self) -> dict[str, Any]:
        processed, total = self.progress_counter.snapshot()
        return {
            "running": self._running.is_set(),
            "processed": processed,
            "total": total,
            "analyzing": self.store.count_by_status(SubjectStatus.ANALYZING),
            "halted": self.halt.is_set(),
            "halt_reason": self.halt.reason,
        }

    def summary(self) -> CompletedSummary:
        return summarize_completed(self.store.list(), self.criteria)

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Drop every subject. Refused while a run is in progress."""
        if self._running.is_set():
            raise EvaluationBusyError("cannot reset while an analysis run is in progress")
        self.store.reset()
        self.halt.clear()
        self.progress_counter.start(0)
        self.audit.record(AuditAction.SYSTEM, "Subject data reset")

    def set_api_key(self, api_key: str) -> None:
        self.credentials.set_api_key(api_key)
        clear_model_cache()
        self.halt.clear()
        self.audit.record(AuditAction.SYSTEM, "Gemini API key updated")
