"""Unit tests for score aggregation and the criterion set"""

from __future__ import annotations

import json

import pytest

from portfolioq.evaluation.criteria import (
    DEFAULT_CRITERIA,
    CriteriaConfigError,
    Criterion,
    load_criteria,
    validate_criteria,
)
from portfolioq.evaluation.models import ScoreEntry, Subject, SubjectStatus
from portfolioq.evaluation.scoring import (
    compute_total_score,
    round_half_up,
    summarize_completed,
)

A_B = [Criterion(id="A", name="A", weight=60), Criterion(id="B", name="B", weight=40)]


def _score(cid: str, raw: float) -> ScoreEntry:
    return ScoreEntry(criterion_id=cid, score=raw)


def test_weighted_total():
    assert compute_total_score([_score("A", 10), _score("B", 5)], A_B) == 80


def test_missing_criterion_counts_as_zero():
    assert compute_total_score([_score("A", 10)], A_B) == 60
    assert compute_total_score([], A_B) == 0


def test_unknown_and_duplicate_scores():
    scores = [_score("A", 5), _score("A", 10), _score("Z", 10)]
    assert compute_total_score(scores, A_B) == 30


def test_rounds_half_up():
    criteria = [Criterion(id="A", name="A", weight=5)]
    assert compute_total_score([_score("A", 5)], criteria) == 3  # 2.5
    assert round_half_up(82.5) == 83
    assert round_half_up(82.49) == 82


def test_full_marks_on_default_criteria():
    scores = [_score(c.id, 10) for c in DEFAULT_CRITERIA]
    assert compute_total_score(scores, DEFAULT_CRITERIA) == 100


def test_default_criteria_are_valid():
    validate_criteria(DEFAULT_CRITERIA)
    assert len(DEFAULT_CRITERIA) == 11


def test_validate_rejects_bad_weight_sum():
    with pytest.raises(CriteriaConfigError, match="sum to 90"):
        validate_criteria([Criterion(id="A", name="A", weight=90)])


def test_validate_rejects_duplicate_ids():
    with pytest.raises(CriteriaConfigError, match="duplicate"):
        validate_criteria(
            [Criterion(id="A", name="A", weight=50), Criterion(id="A", name="A2", weight=50)]
        )


def test_load_criteria_from_json(tmp_path):
    path = tmp_path / "criteria.json"
    path.write_text(json.dumps([c.model_dump() for c in A_B]), encoding="utf-8")

    assert [c.id for c in load_criteria(path)] == ["A", "B"]


def _subject(name: str, status: SubjectStatus, a: float = 0, total: int | None = None) -> Subject:
    return Subject(
        name=name,
        status=status,
        scores=[_score("A", a)] if total is not None else None,
        total_score=total,
    )


def test_summary_over_completed_only():
    subjects = [
        _subject("one", SubjectStatus.COMPLETED, a=8, total=80),
        _subject("two", SubjectStatus.COMPLETED, a=5, total=45),
        _subject("three", SubjectStatus.ERROR),
        _subject("four", SubjectStatus.PENDING),
    ]

    summary = summarize_completed(subjects, A_B)

    assert summary.completed_count == 2
    assert summary.criterion_averages == {"A": 6.5, "B": 0.0}
    assert summary.average_total == 63  # 62.5
    assert summary.top_subject_name == "one"
    assert summary.top_total == 80
    assert summary.status_counts == {"pending": 1, "analyzing": 0, "completed": 2, "error": 1}


def test_summary_with_nothing_completed():
    summary = summarize_completed([_subject("x", SubjectStatus.PENDING)], A_B)

    assert summary.completed_count == 0
    assert summary.top_subject_id is None
    assert summary.average_total == 0
