"""Run progress and post-hoc score summary."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends

from portfolioq.api.dependencies import get_service
from portfolioq.evaluation.service import EvaluationService

router = APIRouter(prefix="/api", tags=["status"])


@router.get("/progress")
def get_progress(service: EvaluationService = Depends(get_service)) -> dict[str, Any]:
    return service.progress()


@router.get("/summary")
def get_summary(service: EvaluationService = Depends(get_service)) -> dict[str, Any]:
    """Criterion averages, average total and top performer over completed subjects."""
    return asdict(service.summary())
