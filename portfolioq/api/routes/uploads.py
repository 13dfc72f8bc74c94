"""
Upload endpoint - the trigger for a batch evaluation.

The client posts every file of the selected directory as multipart `files`,
with the directory-relative path of each file in `paths` (same order). When
`paths` is omitted, each file's own filename is used as its relative path.

Files are spooled to disk under a per-upload directory; the subjects are
merged synchronously and analysis continues in the background.
"""

from __future__ import annotations

import shutil
import uuid
from pathlib import Path

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    HTTPException,
    UploadFile,
    status,
)
from pydantic import BaseModel

from portfolioq.api.dependencies import get_service, get_upload_dir
from portfolioq.config import API_UPLOAD_MAX_FILES
from portfolioq.evaluation.grouping import UploadEntry, split_path
from portfolioq.evaluation.models import PathEvidenceFile, guess_media_type
from portfolioq.evaluation.service import EvaluationService
from portfolioq.observability.logging import get_logger
from portfolioq.observability.telemetry import counter

router = APIRouter(prefix="/api", tags=["uploads"])
logger = get_logger(__name__)

_GENERIC_MEDIA_TYPES = ("", "application/octet-stream")


class UploadResponse(BaseModel):
    upload_id: str
    file_count: int
    subject_count: int
    new_subject_ids: list[str]
    updated_subject_ids: list[str]


def _spool(upload: UploadFile, relative_path: str, target_dir: Path, index: int) -> UploadEntry:
    segments = split_path(relative_path)
    base_name = segments[-1] if segments else f"file-{index}"
    destination = target_dir / f"{index:05d}_{Path(base_name).name}"
    with destination.open("wb") as out:
        shutil.copyfileobj(upload.file, out)

    media_type = (upload.content_type or "").lower()
    if media_type in _GENERIC_MEDIA_TYPES:
        media_type = guess_media_type(base_name)
    return UploadEntry(
        relative_path=relative_path,
        file=PathEvidenceFile(destination, media_type=media_type, name=base_name),
    )


@router.post("/uploads", response_model=UploadResponse, status_code=status.HTTP_202_ACCEPTED)
def upload_directory(
    background_tasks: BackgroundTasks,
    files: list[UploadFile] = File(...),
    paths: list[str] | None = Form(None),
    service: EvaluationService = Depends(get_service),
    upload_dir: Path = Depends(get_upload_dir),
) -> UploadResponse:
    if len(files) > API_UPLOAD_MAX_FILES:
        raise HTTPException(status_code=400, detail=f"Too many files (max {API_UPLOAD_MAX_FILES})")
    if paths is not None and len(paths) != len(files):
        raise HTTPException(status_code=400, detail="paths must have one entry per file")

    upload_id = str(uuid.uuid4())
    target_dir = upload_dir / upload_id
    target_dir.mkdir(parents=True, exist_ok=True)

    relative_paths = paths if paths is not None else [f.filename or "" for f in files]
    try:
        entries = [
            _spool(upload, relative, target_dir, i)
            for i, (upload, relative) in enumerate(zip(files, relative_paths))
        ]
    except OSError as e:
        logger.error("Failed to spool upload %s: %s", upload_id, e)
        shutil.rmtree(target_dir, ignore_errors=True)
        raise HTTPException(status_code=500, detail="Failed to store uploaded files") from None

    result = service.ingest_upload(entries)
    counter("api.uploads")
    if result.new_ids:
        background_tasks.add_task(service.schedule, result.new_ids)

    return UploadResponse(
        upload_id=upload_id,
        file_count=len(entries),
        subject_count=len(result.new_ids) + len(result.updated_ids),
        new_subject_ids=result.new_ids,
        updated_subject_ids=result.updated_ids,
    )
