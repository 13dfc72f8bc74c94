"""Unit tests for SubjectStore: transitions, listeners and persistence"""

from __future__ import annotations

import json

import pytest

from portfolioq.config import SUBJECTS_STORAGE_KEY
from portfolioq.evaluation.grouping import SubjectGroup
from portfolioq.evaluation.models import (
    ALLOWED_TRANSITIONS,
    BytesEvidenceFile,
    InvalidTransitionError,
    ScoreEntry,
    SubjectStatus,
)
from portfolioq.evaluation.store import SubjectNotFoundError, SubjectStore
from portfolioq.observability.telemetry import get_counter


def _seed(store: SubjectStore, *names: str) -> list[str]:
    groups = {}
    for name in names:
        group = SubjectGroup(name=name, folder_path=name)
        group.add("plan.pdf", BytesEvidenceFile(name="plan.pdf", data=b"%PDF"))
        groups[name] = group
    return store.merge(groups).new_ids


def test_every_status_has_a_transition_entry():
    assert set(ALLOWED_TRANSITIONS) == set(SubjectStatus)


@pytest.mark.parametrize(
    "path",
    [
        [SubjectStatus.ANALYZING, SubjectStatus.COMPLETED, SubjectStatus.PENDING],
        [SubjectStatus.ANALYZING, SubjectStatus.ERROR, SubjectStatus.PENDING],
        [SubjectStatus.ANALYZING, SubjectStatus.PENDING, SubjectStatus.ANALYZING],
    ],
)
def test_allowed_paths(path):
    store = SubjectStore()
    (sid,) = _seed(store, "Ahmed")

    for status in path:
        store.transition(sid, status)

    assert store.get(sid).status == path[-1]


@pytest.mark.parametrize(
    "setup,target",
    [
        ([], SubjectStatus.COMPLETED),
        ([], SubjectStatus.ERROR),
        ([SubjectStatus.ANALYZING], SubjectStatus.ANALYZING),
        ([SubjectStatus.ANALYZING, SubjectStatus.COMPLETED], SubjectStatus.ANALYZING),
        ([SubjectStatus.ANALYZING, SubjectStatus.ERROR], SubjectStatus.COMPLETED),
    ],
)
def test_illegal_transitions_raise(setup, target):
    store = SubjectStore()
    (sid,) = _seed(store, "Ahmed")
    for status in setup:
        store.transition(sid, status)

    with pytest.raises(InvalidTransitionError):
        store.transition(sid, target)


def test_unknown_subject_raises_not_found():
    store = SubjectStore()

    with pytest.raises(SubjectNotFoundError):
        store.get("nope")
    with pytest.raises(SubjectNotFoundError):
        store.transition("nope", SubjectStatus.ANALYZING)


def test_transition_replaces_snapshot():
    store = SubjectStore()
    (sid,) = _seed(store, "Ahmed")
    before = store.get(sid)

    store.transition(sid, SubjectStatus.ANALYZING)

    assert before.status == SubjectStatus.PENDING
    assert store.get(sid).status == SubjectStatus.ANALYZING


def test_update_rejects_status():
    store = SubjectStore()
    (sid,) = _seed(store, "Ahmed")

    with pytest.raises(ValueError):
        store.update(sid, status=SubjectStatus.COMPLETED)
    assert store.update(sid, summary="note").summary == "note"


def test_listeners_see_every_change():
    store = SubjectStore()
    seen = []
    store.add_listener(lambda s: seen.append((s.name, s.status)))

    (sid,) = _seed(store, "Ahmed")
    store.transition(sid, SubjectStatus.ANALYZING)

    assert seen == [("Ahmed", SubjectStatus.PENDING), ("Ahmed", SubjectStatus.ANALYZING)]


def test_persistence_round_trip_drops_handles_and_resets_analyzing(kv):
    store = SubjectStore(kv)
    done_id, running_id = _seed(store, "Done", "Running")
    store.transition(done_id, SubjectStatus.ANALYZING)
    store.transition(
        done_id,
        SubjectStatus.COMPLETED,
        scores=[ScoreEntry(criterion_id="job_duties", score=9, justification="نعم")],
        total_score=9,
        summary="ملخص",
    )
    store.transition(running_id, SubjectStatus.ANALYZING)

    stored = json.loads(kv.get(SUBJECTS_STORAGE_KEY))
    assert all("file_objects" not in s for s in stored)

    reloaded = SubjectStore(kv)
    assert reloaded.load() == 2

    done = reloaded.get(done_id)
    assert done.status == SubjectStatus.COMPLETED
    assert done.total_score == 9
    assert done.summary == "ملخص"
    assert done.scores[0].justification == "نعم"
    assert done.files == ["plan.pdf"]
    assert done.file_objects == []
    assert reloaded.get(running_id).status == SubjectStatus.PENDING


def test_reset_clears_memory_and_persistence(kv):
    store = SubjectStore(kv)
    _seed(store, "Ahmed")

    store.reset()

    assert len(store) == 0
    assert kv.get(SUBJECTS_STORAGE_KEY) is None
    assert SubjectStore(kv).load() == 0


def test_corrupt_persisted_subjects_load_as_empty(kv):
    kv.set(SUBJECTS_STORAGE_KEY, '[{"name": "no id or status"}')
    store = SubjectStore(kv)

    assert store.load() == 0
    assert len(store) == 0
    assert get_counter("store.corrupt") == 1

    _seed(store, "Ahmed")
    assert SubjectStore(kv).load() == 1
