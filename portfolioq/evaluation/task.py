"""
AnalysisTask - the lifecycle of one subject's analysis.

pending -> analyzing -> completed | error | pending (credential rollback)

run() never raises: every failure is contained here. A credential failure
is the only one that reaches beyond this subject, and it does so by
triggering the HaltSignal before the task returns, so the scheduler cannot
admit another subject after observing the task's completion.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from enum import Enum
from typing import Protocol

from portfolioq.config import EVIDENCE_TOP_K
from portfolioq.evaluation.criteria import Criterion
from portfolioq.evaluation.evidence import extract_content_parts, select_evidence
from portfolioq.evaluation.models import (
    AnalysisResult,
    ContentPart,
    InvalidTransitionError,
    SubjectStatus,
)
from portfolioq.evaluation.scoring import compute_total_score
from portfolioq.evaluation.store import SubjectNotFoundError, SubjectStore
from portfolioq.llm.errors import LLMCredentialError
from portfolioq.observability.logging import get_logger
from portfolioq.observability.telemetry import counter, log_event

logger = get_logger(__name__)


class Analyzer(Protocol):
    def analyze(
        self, name: str, file_paths: Sequence[str], parts: Sequence[ContentPart]
    ) -> AnalysisResult: ...


class TaskOutcome(str, Enum):
    COMPLETED = "completed"
    ERROR = "error"
    REVERTED = "reverted"


class HaltSignal:
    """Scheduler-wide stop flag. Gates new admissions only."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def trigger(self, reason: str = "") -> None:
        self.reason = reason
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def clear(self) -> None:
        self.reason = None
        self._event.clear()


class ProgressCounter:
    """Processed/total for the current run."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total = 0
        self.processed = 0

    def start(self, total: int) -> None:
        with self._lock:
            self.total = total
            self.processed = 0

    def increment(self) -> int:
        with self._lock:
            self.processed += 1
            return self.processed

    def snapshot(self) -> tuple[int, int]:
        with self._lock:
            return self.processed, self.total


class AnalysisTask:
    def __init__(
        self,
        store: SubjectStore,
        analyzer: Analyzer,
        criteria: Sequence[Criterion],
        halt: HaltSignal,
        progress: ProgressCounter | None = None,
        evidence_limit: int = EVIDENCE_TOP_K,
    ) -> None:
        self.store = store
        self.analyzer = analyzer
        self.criteria = tuple(criteria)
        self.halt = halt
        self.progress = progress or ProgressCounter()
        self.evidence_limit = evidence_limit

    def run(self, subject_id: str) -> TaskOutcome:
        try:
            return self._run(subject_id)
        finally:
            self.progress.increment()

    def _run(self, subject_id: str) -> TaskOutcome:
        try:
            subject = self.store.transition(subject_id, SubjectStatus.ANALYZING)
        except (SubjectNotFoundError, InvalidTransitionError) as e:
            # Removed by a reset, or picked up by another run
            counter("task.not_admitted")
            logger.warning("Skipping subject %s: %s", subject_id, e)
            return TaskOutcome.ERROR

        try:
            selected = select_evidence(subject.file_objects, self.evidence_limit)
            parts = extract_content_parts(selected)
            result = self.analyzer.analyze(subject.name, subject.files, parts)
            total = compute_total_score(result.scores, self.criteria)
            self.store.transition(
                subject_id,
                SubjectStatus.COMPLETED,
                scores=result.scores,
                total_score=total,
                summary=result.summary,
                predictions=result.predictions,
            )
        except LLMCredentialError as e:
            self.halt.trigger(str(e))
            counter("task.credential_halt")
            logger.warning("Credential rejected while analyzing %s; halting batch", subject.name)
            self._settle(subject_id, SubjectStatus.PENDING)
            return TaskOutcome.REVERTED
        except Exception as e:
            counter("task.error")
            logger.error("Analysis failed for %s: %s", subject.name, e, exc_info=True)
            self._settle(subject_id, SubjectStatus.ERROR)
            return TaskOutcome.ERROR

        counter("task.completed")
        log_event("task.completed", subject_id=subject_id, total_score=total)
        return TaskOutcome.COMPLETED

    def _settle(self, subject_id: str, status: SubjectStatus) -> None:
        try:
            self.store.transition(subject_id, status)
        except (SubjectNotFoundError, InvalidTransitionError) as e:
            logger.warning("Could not move subject %s to %s: %s", subject_id, status.value, e)
