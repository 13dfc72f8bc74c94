"""Health check endpoint for PortfolioQ API.

Provides a liveness probe for Cloud Run monitoring.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends

from portfolioq.api.dependencies import get_service
from portfolioq.config import APP_VERSION
from portfolioq.evaluation.service import EvaluationService

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(service: EvaluationService = Depends(get_service)) -> dict[str, Any]:
    """Health check endpoint.

    Returns service status, version, and Gemini credential readiness
    (does not make an API call, only checks presence).
    """
    has_api_key = service.credentials.has_api_key()
    has_project = bool(os.getenv("GOOGLE_CLOUD_PROJECT"))

    return {
        "status": "healthy",
        "service": "PortfolioQ API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "llm": {
            "ready": has_api_key or has_project,
            "api_key": has_api_key,
            "google_cloud_project": has_project,
        },
    }
