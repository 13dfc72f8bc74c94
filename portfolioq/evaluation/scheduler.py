"""
BatchScheduler - bounded-concurrency driver for AnalysisTask.

At most max_concurrency subjects are analyzed at once. Before every
admission the halt signal is checked; once it is set, nothing new starts
and in-flight tasks are left to finish. No ordering between subjects is
guaranteed.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

from portfolioq.config import ANALYSIS_CONCURRENCY
from portfolioq.evaluation.task import AnalysisTask, TaskOutcome
from portfolioq.observability.logging import get_logger
from portfolioq.observability.telemetry import log_event, time_block

logger = get_logger(__name__)


@dataclass
class RunSummary:
    """Outcome counts for one scheduling run."""

    total: int
    processed: int = 0
    completed: int = 0
    errors: int = 0
    reverted: int = 0
    not_started: int = 0
    halted: bool = False


class BatchScheduler:
    def __init__(self, task: AnalysisTask, max_concurrency: int = ANALYSIS_CONCURRENCY) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.task = task
        self.max_concurrency = max_concurrency

    def run(self, subject_ids: Iterable[str]) -> RunSummary:
        """
        Analyze the given subjects and block until the run settles.

        Returns:
            RunSummary; not_started counts subjects never admitted because
            the halt signal was raised.
        """
        queue = deque(subject_ids)
        summary = RunSummary(total=len(queue))
        if not queue:
            return summary

        halt = self.task.halt
        logger.info(
            "Scheduling %d subjects (max_concurrency=%d)", summary.total, self.max_concurrency
        )

        with time_block("scheduler.run"), ThreadPoolExecutor(
            max_workers=self.max_concurrency, thread_name_prefix="portfolioq-analysis"
        ) as executor:
            in_flight: set[Future[TaskOutcome]] = set()

            while queue or in_flight:
                while queue and len(in_flight) < self.max_concurrency and not halt.is_set():
                    in_flight.add(executor.submit(self.task.run, queue.popleft()))

                if not in_flight:
                    break

                done, in_flight = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    self._record(summary, future)

        summary.not_started = len(queue)
        summary.halted = halt.is_set()
        if summary.halted:
            logger.warning(
                "Run halted (%s): %d subjects not started", halt.reason, summary.not_started
            )

        log_event(
            "scheduler.run_complete",
            total=summary.total,
            completed=summary.completed,
            errors=summary.errors,
            reverted=summary.reverted,
            not_started=summary.not_started,
        )
        return summary

    @staticmethod
    def _record(summary: RunSummary, future: Future[TaskOutcome]) -> None:
        summary.processed += 1
        try:
            outcome = future.result()
        except Exception as e:
            logger.error("Analysis task raised unexpectedly: %s", e, exc_info=True)
            summary.errors += 1
            return

        if outcome == TaskOutcome.COMPLETED:
            summary.completed += 1
        elif outcome == TaskOutcome.REVERTED:
            summary.reverted += 1
        else:
            summary.errors += 1
