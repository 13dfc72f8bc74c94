"""Credential and audit endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from portfolioq.api.dependencies import get_service
from portfolioq.evaluation.service import EvaluationService
from portfolioq.storage.audit import AuditEntry

router = APIRouter(prefix="/api", tags=["admin"])


class CredentialsRequest(BaseModel):
    api_key: str = Field(..., min_length=1, max_length=256)


@router.put("/credentials", status_code=status.HTTP_204_NO_CONTENT)
def put_credentials(
    request: CredentialsRequest, service: EvaluationService = Depends(get_service)
) -> None:
    """Store the user's Gemini API key. Pending subjects can then be retried."""
    try:
        service.set_api_key(request.api_key)
    except ValueError:
        raise HTTPException(status_code=400, detail="API key cannot be empty") from None


@router.get("/audit", response_model=list[AuditEntry])
def get_audit(
    limit: int = Query(100, ge=1, le=500),
    service: EvaluationService = Depends(get_service),
) -> list[AuditEntry]:
    """Most recent audit entries, newest first."""
    return service.audit.entries()[:limit]
