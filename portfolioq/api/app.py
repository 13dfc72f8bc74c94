"""FastAPI server for PortfolioQ"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portfolioq.api.routes.admin import router as admin_router
from portfolioq.api.routes.health import router as health_router
from portfolioq.api.routes.status import router as status_router
from portfolioq.api.routes.subjects import router as subjects_router
from portfolioq.api.routes.uploads import router as uploads_router
from portfolioq.config import API_HOST, API_PORT, APP_VERSION, DB_PATH, UPLOAD_DIR
from portfolioq.evaluation.service import EvaluationService
from portfolioq.infrastructure.kv_store import SqliteKeyValueStore
from portfolioq.infrastructure.settings import is_development
from portfolioq.observability.logging import get_logger
from portfolioq.observability.telemetry import counter, log_event

logger = get_logger(__name__)

ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Custom validation error handler that prevents leaking internal validation logic.
    """
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


def _default_service() -> EvaluationService:
    try:
        logger.info("Opening state database at %s", DB_PATH)
        return EvaluationService(SqliteKeyValueStore(DB_PATH))
    except sqlite3.OperationalError as e:
        logger.critical("State database error: %s", e)
        raise RuntimeError(f"Database initialization failed: {e}") from e


def create_app(
    service: EvaluationService | None = None, upload_dir: Path | None = None
) -> FastAPI:
    """
    Build the API app.

    Args:
        service: Evaluation service to serve; defaults to one backed by DB_PATH
        upload_dir: Where uploaded evidence is spooled; defaults to UPLOAD_DIR
    """
    # Load environment variables from .env file
    load_dotenv()

    app = FastAPI(title="PortfolioQ API", version=APP_VERSION)
    app.state.service = service or _default_service()
    app.state.upload_dir = Path(upload_dir or UPLOAD_DIR)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    if is_development():
        app.add_middleware(
            CORSMiddleware,
            allow_origins=ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        )

    app.include_router(health_router)
    app.include_router(uploads_router)
    app.include_router(subjects_router)
    app.include_router(status_router)
    app.include_router(admin_router)

    @app.get("/")
    def root() -> dict[str, Any]:
        return {
            "service": "PortfolioQ API",
            "version": APP_VERSION,
            "status": "running",
            "endpoints": {
                "health": "/health",
                "uploads": "/api/uploads",
                "subjects": "/api/subjects",
                "progress": "/api/progress",
                "summary": "/api/summary",
                "credentials": "/api/credentials",
                "audit": "/api/audit",
            },
        }

    log_event("api.startup", service="portfolioq", version=APP_VERSION)
    return app


def main() -> None:
    import uvicorn

    uvicorn.run("portfolioq.api.app:create_app", factory=True, host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
