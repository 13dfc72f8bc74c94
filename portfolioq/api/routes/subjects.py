"""
Subject endpoints: list, inspect, re-analyze and reset.

Analysis runs started here execute as background tasks; poll
/api/progress or the subject itself for the outcome.
"""

from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel

from portfolioq.api.dependencies import get_service, get_upload_dir
from portfolioq.evaluation.models import InvalidTransitionError, Prediction, ScoreEntry, Subject
from portfolioq.evaluation.service import EvaluationConflictError, EvaluationService
from portfolioq.evaluation.store import SubjectNotFoundError
from portfolioq.observability.logging import get_logger
from portfolioq.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/subjects", tags=["subjects"])
logger = get_logger(__name__)


# ============================================================================
# Response Models
# ============================================================================


class SubjectResponse(BaseModel):
    """API response for a single subject."""

    id: str
    name: str
    folder_path: str
    status: str
    files: list[str]
    has_evidence: bool
    scores: list[ScoreEntry] | None
    total_score: int | None
    summary: str | None
    predictions: list[Prediction] | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_subject(cls, subject: Subject) -> SubjectResponse:
        return cls(
            id=subject.id,
            name=subject.name,
            folder_path=subject.folder_path,
            status=subject.status.value,
            files=subject.files,
            has_evidence=subject.has_evidence_handles(),
            scores=subject.scores,
            total_score=subject.total_score,
            summary=subject.summary,
            predictions=subject.predictions,
            created_at=subject.created_at,
            updated_at=subject.updated_at,
        )


class ScheduledResponse(BaseModel):
    scheduled_ids: list[str]


# ============================================================================
# Endpoints
# ============================================================================


@router.get("", response_model=list[SubjectResponse])
def list_subjects(service: EvaluationService = Depends(get_service)) -> list[SubjectResponse]:
    return [SubjectResponse.from_subject(s) for s in service.subjects()]


@router.post(
    "/retry-pending", response_model=ScheduledResponse, status_code=status.HTTP_202_ACCEPTED
)
def retry_pending(
    background_tasks: BackgroundTasks,
    service: EvaluationService = Depends(get_service),
) -> ScheduledResponse:
    """Re-run subjects left pending by a halted run (after the API key is fixed)."""
    ids = service.pending_retry_ids()
    if ids:
        background_tasks.add_task(service.schedule, ids)
    return ScheduledResponse(scheduled_ids=ids)


@router.get("/{subject_id}", response_model=SubjectResponse)
def get_subject(
    subject_id: str, service: EvaluationService = Depends(get_service)
) -> SubjectResponse:
    try:
        return SubjectResponse.from_subject(service.get_subject(subject_id))
    except SubjectNotFoundError:
        raise HTTPException(status_code=404, detail="Subject not found") from None


@router.post(
    "/{subject_id}/reanalyze",
    response_model=ScheduledResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def reanalyze_subject(
    subject_id: str,
    background_tasks: BackgroundTasks,
    service: EvaluationService = Depends(get_service),
) -> ScheduledResponse:
    """Clear a subject's results and analyze it again."""
    try:
        ids = service.prepare_reanalysis([subject_id])
    except SubjectNotFoundError:
        raise HTTPException(status_code=404, detail="Subject not found") from None
    except (EvaluationConflictError, InvalidTransitionError) as e:
        raise HTTPException(status_code=409, detail=sanitize_error_message(str(e), 409)) from None

    background_tasks.add_task(service.schedule, ids)
    return ScheduledResponse(scheduled_ids=ids)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def reset_subjects(
    service: EvaluationService = Depends(get_service),
    upload_dir: Path = Depends(get_upload_dir),
) -> None:
    """Forget every subject and delete the spooled upload files."""
    try:
        service.reset()
    except EvaluationConflictError as e:
        raise HTTPException(status_code=409, detail=sanitize_error_message(str(e), 409)) from None

    if upload_dir.is_dir():
        for child in upload_dir.iterdir():
            if child.is_dir():
                shutil.rmtree(child, ignore_errors=True)
            else:
                child.unlink(missing_ok=True)
        logger.info("Removed spooled uploads under %s", upload_dir)
