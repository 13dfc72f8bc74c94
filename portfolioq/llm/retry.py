"""Shared Gemini call with timeout, retry policy and error classification.

call_llm() is the single entry point the analyzer uses. It converts SDK
exceptions into two outcomes the pipeline understands:

- LLMCredentialError: missing/invalid key (401, 403, "API key not valid")
- LLMCallError: everything else once attempts are exhausted

Transient failures (deadline, 5xx, 429) are retried with exponential
backoff up to LLM_MAX_ATTEMPTS. The default of 1 means a single attempt.
"""

from __future__ import annotations

import concurrent.futures
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from portfolioq.config import LLM_MAX_ATTEMPTS, LLM_TIMEOUT_SECONDS
from portfolioq.infrastructure.settings import GEMINI_MAX_TOKENS, GEMINI_TEMPERATURE
from portfolioq.llm.errors import LLMCallError, LLMCredentialError
from portfolioq.llm.gemini import build_contents, get_gemini_model
from portfolioq.observability.logging import get_logger
from portfolioq.observability.telemetry import counter

if TYPE_CHECKING:
    from portfolioq.evaluation.models import ContentPart

logger = get_logger(__name__)

_CREDENTIAL_MARKERS = ("api key not valid", "api_key_invalid", "api key expired")


def is_credential_failure(exc: BaseException) -> bool:
    """True when the SDK error means the key is missing, invalid or unauthorized."""
    from google.api_core.exceptions import InvalidArgument, PermissionDenied, Unauthenticated

    if isinstance(exc, (PermissionDenied, Unauthenticated)):
        return True
    status = getattr(exc, "code", None) or getattr(exc, "status_code", None)
    if status in (401, 403):
        return True
    message = str(exc).lower()
    if isinstance(exc, InvalidArgument) and "api key" in message:
        return True
    return any(marker in message for marker in _CREDENTIAL_MARKERS)


def _run_with_timeout(model: Any, contents: list[Any], generation_config: dict[str, Any]) -> Any:
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
    try:
        future = executor.submit(
            model.generate_content, contents, generation_config=generation_config
        )
        try:
            return future.result(timeout=LLM_TIMEOUT_SECONDS)
        except concurrent.futures.TimeoutError:
            raise TimeoutError(f"Gemini call timed out after {LLM_TIMEOUT_SECONDS}s") from None
    finally:
        # A hung request keeps its thread; the caller is not blocked on it
        executor.shutdown(wait=False, cancel_futures=True)


@retry(
    stop=stop_after_attempt(max(1, LLM_MAX_ATTEMPTS)),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((TimeoutError, ConnectionError, OSError)),
    reraise=True,
)
def _generate(
    model: Any,
    contents: list[Any],
    generation_config: dict[str, Any],
    counter_prefix: str,
) -> str:
    from google.api_core.exceptions import (
        DeadlineExceeded,
        GoogleAPIError,
        InternalServerError,
        ResourceExhausted,
        ServiceUnavailable,
    )

    try:
        response = _run_with_timeout(model, contents, generation_config)
    except TimeoutError:
        counter(f"{counter_prefix}.timeout")
        logger.warning("LLM call timed out after %ds", LLM_TIMEOUT_SECONDS)
        raise
    except DeadlineExceeded as e:
        counter(f"{counter_prefix}.timeout")
        logger.warning("LLM deadline exceeded: %s", e)
        raise TimeoutError(f"LLM call timed out: {e}") from e
    except ServiceUnavailable as e:
        counter(f"{counter_prefix}.service_unavailable")
        logger.warning("LLM service unavailable: %s", e)
        raise ConnectionError(f"LLM service unavailable: {e}") from e
    except ResourceExhausted as e:
        counter(f"{counter_prefix}.rate_limited")
        logger.warning("LLM rate limited (429): %s", e)
        raise OSError(f"LLM rate limited: {e}") from e
    except InternalServerError as e:
        counter(f"{counter_prefix}.internal_error")
        logger.warning("LLM internal error (500): %s", e)
        raise ConnectionError(f"LLM internal error: {e}") from e
    except GoogleAPIError as e:
        if is_credential_failure(e):
            counter(f"{counter_prefix}.credential_rejected")
            raise LLMCredentialError(f"Gemini rejected the API key: {e}") from e
        raise LLMCallError(f"Gemini call failed: {e}") from e
    except Exception as e:
        # google-generativeai surfaces some key errors outside GoogleAPIError
        if is_credential_failure(e):
            counter(f"{counter_prefix}.credential_rejected")
            raise LLMCredentialError(f"Gemini rejected the API key: {e}") from e
        raise LLMCallError(f"Gemini call failed: {e}") from e

    try:
        text = response.text
    except ValueError as e:
        # Raised by the SDKs when the candidate was blocked or empty
        raise LLMCallError(f"Gemini returned no usable text: {e}") from e
    if not text:
        raise LLMCallError("Gemini returned an empty response")
    return text


def call_llm(
    prompt: str,
    parts: Sequence[ContentPart] = (),
    *,
    api_key: str | None = None,
    system_instruction: str | None = None,
    json_output: bool = True,
    counter_prefix: str = "analysis",
) -> str:
    """Call Gemini with the prompt and inline evidence parts.

    Args:
        prompt: User prompt text.
        parts: Evidence content attached after the prompt.
        api_key: Key for the google-generativeai backend.
        system_instruction: Bound to the cached model instance.
        json_output: Request application/json output.
        counter_prefix: Telemetry counter prefix.

    Returns:
        The model's response text.

    Raises:
        LLMCredentialError: Missing or rejected credential.
        LLMCallError: Any other failure after the configured attempts.
    """
    model = get_gemini_model(api_key=api_key, system_instruction=system_instruction)

    generation_config: dict[str, Any] = {
        "temperature": GEMINI_TEMPERATURE,
        "max_output_tokens": GEMINI_MAX_TOKENS,
    }
    # response_schema is left out: Vertex wants protobuf Schema objects and the
    # prompt already fixes the JSON shape; parsing is validated with pydantic.
    if json_output:
        generation_config["response_mime_type"] = "application/json"

    contents = build_contents(prompt, parts)
    try:
        return _generate(model, contents, generation_config, counter_prefix)
    except (LLMCredentialError, LLMCallError):
        raise
    except OSError as e:
        # TimeoutError/ConnectionError included: attempts exhausted
        raise LLMCallError(str(e)) from e
