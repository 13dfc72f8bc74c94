"""
Gemini Model Manager - cached model instances and multimodal content.

Supports two backends:
  1. Vertex AI SDK (Cloud Run): used when GOOGLE_CLOUD_PROJECT is configured
  2. google-generativeai: uses the user's API key (stored key or GOOGLE_API_KEY)

Evidence is sent as inline data, so content parts are built for whichever
backend initialized the model.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from portfolioq.infrastructure.settings import GEMINI_LOCATION, GEMINI_MODEL, GOOGLE_CLOUD_PROJECT
from portfolioq.llm.errors import LLMCredentialError
from portfolioq.observability.logging import get_logger

if TYPE_CHECKING:
    from portfolioq.evaluation.models import ContentPart

logger = get_logger(__name__)

# Track which backend initialized the model so content parts match it
_backend: str | None = None  # "vertexai" or "genai"


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


def _vertex_project() -> str | None:
    # Read env fresh (settings may have been imported before dotenv ran)
    return os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT


@lru_cache(maxsize=8)
def get_gemini_model(api_key: str | None = None, system_instruction: str | None = None):
    """
    Get or create a Gemini model instance.

    Cached per (api_key, system_instruction): system instructions are bound
    to the model instance, and the analyzer always uses the same one.

    Returns:
        GenerativeModel for the active backend

    Raises:
        LLMCredentialError: No backend credential (project or API key) available
        GeminiInitializationError: SDK missing or initialization failed
    """
    global _backend
    project = _vertex_project()

    if project:
        try:
            import vertexai
            from vertexai.generative_models import GenerativeModel

            location = os.getenv("GEMINI_LOCATION", "") or GEMINI_LOCATION or "us-central1"
            vertexai.init(project=project, location=location)
            model = GenerativeModel(GEMINI_MODEL, system_instruction=system_instruction)
            _backend = "vertexai"

            logger.info(
                "Initialized Gemini model (Vertex AI): project=%s, location=%s, model=%s",
                project,
                location,
                GEMINI_MODEL,
            )
            return model

        except ImportError:
            logger.info("Vertex AI SDK not installed, trying google-generativeai fallback")

    if not api_key:
        raise LLMCredentialError("Gemini API key missing")

    try:
        import google.generativeai as genai

        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(GEMINI_MODEL, system_instruction=system_instruction)
        _backend = "genai"

        logger.info("Initialized Gemini model (google-generativeai): model=%s", GEMINI_MODEL)
        return model

    except ImportError as e:
        raise GeminiInitializationError(
            "No Gemini SDK available. Install google-cloud-aiplatform or google-generativeai."
        ) from e
    except Exception as e:
        logger.error("Failed to initialize Gemini model: %s", e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e


def build_contents(prompt: str, parts: Sequence[ContentPart]) -> list[Any]:
    """Prompt text followed by one inline-data part per evidence file."""
    contents: list[Any] = [prompt]
    if not parts:
        return contents

    if _backend == "vertexai":
        from vertexai.generative_models import Part

        contents.extend(Part.from_data(data=p.data, mime_type=p.media_type) for p in parts)
    else:
        contents.extend({"mime_type": p.media_type, "data": p.data} for p in parts)
    return contents


def clear_model_cache() -> None:
    """
    Clear cached model instances.

    Called after the user replaces the API key, and from tests.
    """
    global _backend
    get_gemini_model.cache_clear()
    _backend = None
    logger.info("Cleared Gemini model cache")
