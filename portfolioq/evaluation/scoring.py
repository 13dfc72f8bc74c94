"""
Score aggregation.

compute_total_score() turns raw 0-10 criterion scores into a weighted
total out of 100. summarize_completed() is the post-hoc aggregate shown
on the dashboard: it never ranks subjects against each other beyond
naming the top total.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from portfolioq.evaluation.criteria import Criterion
from portfolioq.evaluation.models import ScoreEntry, Subject, SubjectStatus


def round_half_up(value: float) -> int:
    # round() is banker's rounding: 82.5 must give 83
    return int(math.floor(value + 0.5))


def compute_total_score(scores: Iterable[ScoreEntry], criteria: Sequence[Criterion]) -> int:
    """Weighted total: sum over criteria of (raw / 10) * weight.

    A criterion with no score contributes 0. Scores for unknown criteria
    are ignored; the first score for a criterion wins.
    """
    raw_by_criterion: dict[str, float] = {}
    for entry in scores:
        raw_by_criterion.setdefault(entry.criterion_id, entry.score)

    total = 0.0
    for criterion in criteria:
        raw = raw_by_criterion.get(criterion.id, 0.0)
        total += (raw / 10) * criterion.weight
    return round_half_up(total)


@dataclass
class CompletedSummary:
    """Aggregate over completed subjects."""

    completed_count: int
    status_counts: dict[str, int]
    average_total: int
    criterion_averages: dict[str, float] = field(default_factory=dict)
    top_subject_id: str | None = None
    top_subject_name: str | None = None
    top_total: int | None = None


def summarize_completed(subjects: Sequence[Subject], criteria: Sequence[Criterion]) -> CompletedSummary:
    """Criterion averages (1 decimal), average total and top performer."""
    status_counts = {status.value: 0 for status in SubjectStatus}
    for subject in subjects:
        status_counts[SubjectStatus(subject.status).value] += 1

    completed = [s for s in subjects if s.status == SubjectStatus.COMPLETED]
    if not completed:
        return CompletedSummary(
            completed_count=0,
            status_counts=status_counts,
            average_total=0,
            criterion_averages={c.id: 0.0 for c in criteria},
        )

    criterion_averages = {
        c.id: round(sum(s.score_for(c.id) for s in completed) / len(completed), 1)
        for c in criteria
    }
    totals = [s.total_score or 0 for s in completed]
    average_total = round_half_up(sum(totals) / len(completed))

    # max() keeps the first subject on ties
    top = max(completed, key=lambda s: s.total_score or 0)
    return CompletedSummary(
        completed_count=len(completed),
        status_counts=status_counts,
        average_total=average_total,
        criterion_averages=criterion_averages,
        top_subject_id=top.id,
        top_subject_name=top.name,
        top_total=top.total_score or 0,
    )
