"""Centralized configuration for the PortfolioQ backend.

Re-exports everything from portfolioq.infrastructure.settings so callers have
one import point, then adds typed constants for storage, the evaluation
pipeline, the LLM call and the API. Environment variable overrides use safe
defaults so the app starts without extra env configuration.
"""

from __future__ import annotations

import os
from pathlib import Path

from portfolioq.infrastructure.settings import *  # noqa: F401, F403
from portfolioq.infrastructure.settings import PORTFOLIOQ_ROOT

# --- App ---
APP_VERSION: str = "1.0.0"

# --- Storage ---
DB_PATH: Path = Path(os.getenv("PORTFOLIOQ_DB_PATH", str(PORTFOLIOQ_ROOT / "data" / "portfolioq.db")))
DB_CONNECT_TIMEOUT: float = float(os.getenv("PORTFOLIOQ_DB_CONNECT_TIMEOUT", "30.0"))
DB_RETRY_MAX: int = int(os.getenv("PORTFOLIOQ_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("PORTFOLIOQ_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("PORTFOLIOQ_DB_RETRY_MAX_DELAY", "2.0"))
UPLOAD_DIR: Path = Path(os.getenv("PORTFOLIOQ_UPLOAD_DIR", str(PORTFOLIOQ_ROOT / "data" / "uploads")))

SUBJECTS_STORAGE_KEY: str = "portfolioq_subjects"
AUDIT_STORAGE_KEY: str = "portfolioq_audit_log"
API_KEY_STORAGE_KEY: str = "user_gemini_api_key"
AUDIT_MAX_ENTRIES: int = 500

# --- Evaluation Pipeline ---
# Every task uploads binary evidence to Gemini
ANALYSIS_CONCURRENCY: int = int(os.getenv("PORTFOLIOQ_ANALYSIS_CONCURRENCY", "2"))
MAX_EVIDENCE_BYTES: int = 4 * 1024 * 1024
EVIDENCE_TOP_K: int = 3
MAX_PROMPT_PATHS: int = 5000
CRITERIA_PATH: str | None = os.getenv("PORTFOLIOQ_CRITERIA_PATH")

# --- LLM ---
LLM_TIMEOUT_SECONDS: int = int(os.getenv("PORTFOLIOQ_LLM_TIMEOUT", "120"))
# 1 = single attempt; raise only for deployments that want transient retries
LLM_MAX_ATTEMPTS: int = int(os.getenv("PORTFOLIOQ_LLM_MAX_ATTEMPTS", "1"))

# --- API ---
API_UPLOAD_MAX_FILES: int = int(os.getenv("PORTFOLIOQ_UPLOAD_MAX_FILES", "20000"))
