"""
Tests for model/prompt version tracking.

Version metadata is logged with every completed analysis.
"""

from __future__ import annotations

from portfolioq.infrastructure.settings import GEMINI_MODEL
from portfolioq.utils.versioning import (
    FULL_VERSION,
    MODEL_NAME,
    PROMPT_VERSION,
    get_version_metadata,
)


def test_version_constants_exist():
    assert MODEL_NAME == GEMINI_MODEL
    assert PROMPT_VERSION
    assert MODEL_NAME in FULL_VERSION
    assert PROMPT_VERSION in FULL_VERSION


def test_get_version_metadata():
    metadata = get_version_metadata()

    assert metadata == {"model_name": MODEL_NAME, "prompt_version": PROMPT_VERSION}
