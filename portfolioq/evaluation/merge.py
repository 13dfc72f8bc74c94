"""Incremental merge of an upload against the known subjects."""

from __future__ import annotations

from dataclasses import dataclass, field

from portfolioq.evaluation.grouping import SubjectGroup
from portfolioq.evaluation.models import Subject, SubjectStatus, utc_now
from portfolioq.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class MergeResult:
    """Result of merging one upload."""

    subjects: list[Subject]
    new_ids: list[str] = field(default_factory=list)
    updated_ids: list[str] = field(default_factory=list)


def merge_subjects(existing: list[Subject], groups: dict[str, SubjectGroup]) -> MergeResult:
    """Merge grouped upload results into the known subject list by name.

    Rules:
    - known name: id, status, scores, total, summary and predictions are kept;
      files and file_objects are replaced with the upload's
    - unknown name: new pending subject with a fresh id
    - subjects absent from the upload are kept unchanged

    Only the new subjects are returned in new_ids; re-analysis of a known
    subject is an explicit request (EvaluationService.reanalyze).
    """
    merged: list[Subject] = []
    updated_ids: list[str] = []
    seen: set[str] = set()

    for subject in existing:
        group = groups.get(subject.name)
        if group is None or subject.name in seen:
            merged.append(subject)
            continue
        seen.add(subject.name)
        merged.append(
            subject.model_copy(
                update={
                    "files": list(group.files),
                    "file_objects": list(group.file_objects),
                    "updated_at": utc_now(),
                }
            )
        )
        updated_ids.append(subject.id)

    new_ids: list[str] = []
    for name, group in groups.items():
        if name in seen:
            continue
        subject = Subject(
            name=name,
            folder_path=group.folder_path,
            files=list(group.files),
            file_objects=list(group.file_objects),
            status=SubjectStatus.PENDING,
        )
        merged.append(subject)
        new_ids.append(subject.id)

    logger.info(
        "Merged upload: %d new, %d updated, %d total subjects",
        len(new_ids),
        len(updated_ids),
        len(merged),
    )
    return MergeResult(subjects=merged, new_ids=new_ids, updated_ids=updated_ids)
