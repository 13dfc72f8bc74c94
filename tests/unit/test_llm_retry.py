"""
Unit tests for the Gemini call layer: error classification and the
missing-credential path. The SDK model is a MagicMock.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as gexc

from portfolioq.llm import gemini
from portfolioq.llm.errors import LLMCallError, LLMCredentialError
from portfolioq.llm.retry import call_llm, is_credential_failure
from portfolioq.observability.telemetry import get_counter


@pytest.fixture(autouse=True)
def _clear_model_cache():
    gemini.clear_model_cache()
    yield
    gemini.clear_model_cache()


def _model(side_effect=None, text="{}"):
    model = MagicMock()
    if side_effect is not None:
        model.generate_content.side_effect = side_effect
    else:
        model.generate_content.return_value = MagicMock(text=text)
    return model


@pytest.mark.parametrize(
    "exc",
    [
        gexc.PermissionDenied("403 forbidden"),
        gexc.Unauthenticated("401"),
        gexc.InvalidArgument("API key not valid. Please pass a valid API key."),
        ValueError("API_KEY_INVALID"),
    ],
)
def test_credential_failures_detected(exc):
    assert is_credential_failure(exc)


@pytest.mark.parametrize(
    "exc",
    [
        gexc.InvalidArgument("Request payload size exceeds the limit"),
        gexc.ResourceExhausted("quota"),
        TimeoutError("slow"),
        RuntimeError("boom"),
    ],
)
def test_other_failures_not_credential(exc):
    assert not is_credential_failure(exc)


def test_call_llm_returns_text():
    model = _model(text='{"scores": []}')
    with patch("portfolioq.llm.retry.get_gemini_model", return_value=model):
        assert call_llm("prompt", api_key="k") == '{"scores": []}'

    _, kwargs = model.generate_content.call_args
    assert kwargs["generation_config"]["response_mime_type"] == "application/json"


def test_call_llm_maps_permission_denied_to_credential_error():
    model = _model(side_effect=gexc.PermissionDenied("API key not valid"))
    with patch("portfolioq.llm.retry.get_gemini_model", return_value=model):
        with pytest.raises(LLMCredentialError):
            call_llm("prompt", api_key="k")
    assert get_counter("analysis.credential_rejected") == 1


@pytest.mark.parametrize(
    "exc,counter_name",
    [
        (gexc.ServiceUnavailable("down"), "analysis.service_unavailable"),
        (gexc.ResourceExhausted("quota"), "analysis.rate_limited"),
        (gexc.DeadlineExceeded("slow"), "analysis.timeout"),
    ],
)
def test_transient_failures_become_call_errors(exc, counter_name):
    model = _model(side_effect=exc)
    with patch("portfolioq.llm.retry.get_gemini_model", return_value=model):
        with pytest.raises(LLMCallError):
            call_llm("prompt", api_key="k")
    assert get_counter(counter_name) == 1
    # Single attempt by default
    assert model.generate_content.call_count == 1


def test_empty_response_is_call_error():
    with patch("portfolioq.llm.retry.get_gemini_model", return_value=_model(text="")):
        with pytest.raises(LLMCallError):
            call_llm("prompt", api_key="k")


def test_missing_key_without_project_is_credential_error(monkeypatch):
    monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
    monkeypatch.setattr(gemini, "GOOGLE_CLOUD_PROJECT", None)

    with pytest.raises(LLMCredentialError):
        gemini.get_gemini_model(api_key=None)


def test_build_contents_inline_parts_for_genai_backend():
    from portfolioq.evaluation.models import ContentPart

    contents = gemini.build_contents("prompt", [ContentPart("image/png", b"png")])

    assert contents == ["prompt", {"mime_type": "image/png", "data": b"png"}]
