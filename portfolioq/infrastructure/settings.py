"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os
from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent.parent
PORTFOLIOQ_ROOT = Path(__file__).parent.parent

# Environment
ENV = os.getenv("PORTFOLIOQ_ENV", "development")
DEBUG = ENV == "development"

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
LOG_LEVEL = os.getenv("PORTFOLIOQ_LOG_LEVEL", "INFO")

# Google Cloud / Gemini
GOOGLE_CLOUD_PROJECT = os.getenv("GOOGLE_CLOUD_PROJECT")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")  # multimodal: PDFs and images
GEMINI_LOCATION = os.getenv("GEMINI_LOCATION", "us-central1")
GEMINI_MAX_TOKENS = int(os.getenv("GEMINI_MAX_TOKENS", "8192"))
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "0.4"))

# Language the model writes justifications and summaries in
REPORT_LANGUAGE = os.getenv("PORTFOLIOQ_REPORT_LANGUAGE", "Arabic")


def is_production() -> bool:
    """Check if running in production"""
    return ENV == "production"


def is_development() -> bool:
    """Check if running in development"""
    return ENV == "development"


def get_env(key: str, default: str | None = None) -> str | None:
    """Get environment variable with fallback"""
    return os.getenv(key, default)
