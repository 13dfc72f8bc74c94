"""FastAPI dependencies shared by the route modules."""

from __future__ import annotations

from pathlib import Path

from fastapi import Request

from portfolioq.evaluation.service import EvaluationService


def get_service(request: Request) -> EvaluationService:
    """The process-wide EvaluationService created by create_app()."""
    return request.app.state.service


def get_upload_dir(request: Request) -> Path:
    return request.app.state.upload_dir
