"""
Model and Prompt Version Tracking

Central source of truth for the model/prompt versions used in portfolio
analysis. The versions are logged with every completed analysis so that
score drift between runs can be traced to a prompt or model change.

Bump PROMPT_VERSION whenever the analyzer prompt changes in a way that
could move scores (not for formatting or comments).
"""

from __future__ import annotations

from portfolioq.infrastructure.settings import GEMINI_MODEL

MODEL_NAME = GEMINI_MODEL

PROMPT_VERSION = "v1"

FULL_VERSION = f"{MODEL_NAME}/prompt-{PROMPT_VERSION}"


def get_version_metadata() -> dict[str, str]:
    """
    Get version metadata dict for logging.

    Returns:
        Dict with model_name and prompt_version fields
    """
    return {
        "model_name": MODEL_NAME,
        "prompt_version": PROMPT_VERSION,
    }
