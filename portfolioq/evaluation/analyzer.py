"""
Portfolio Analyzer - one Gemini call per subject.

Gemini gets two sources of information:
  1. the full file listing (what exists and how it is organised)
  2. up to EVIDENCE_TOP_K attached evidence files (how good the work is)

and returns a 0-10 score with justification per criterion, a narrative
summary and a few forward-looking predictions. The response is validated
with pydantic; anything that cannot be parsed is a generic call failure.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from portfolioq.config import MAX_PROMPT_PATHS
from portfolioq.evaluation.criteria import Criterion, get_criteria
from portfolioq.evaluation.models import (
    AnalysisResult,
    ContentPart,
    ImpactLevel,
    Prediction,
    ScoreEntry,
)
from portfolioq.infrastructure.settings import REPORT_LANGUAGE
from portfolioq.llm.errors import LLMCallError
from portfolioq.llm.retry import call_llm
from portfolioq.observability.logging import get_logger
from portfolioq.observability.telemetry import counter, log_event, time_block
from portfolioq.utils.versioning import get_version_metadata

logger = get_logger(__name__)


class _RawScore(BaseModel):
    """Score as returned by the model, before clamping."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    criterion_id: str = Field(alias="criteriaId")
    score: float = 0.0
    justification: str = ""


class _RawPrediction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    category: str = ""
    description: str = ""
    impact: str = "Medium"
    confidence: float = 50
    timeframe: str = ""


class AnalysisResponseSchema(BaseModel):
    """Schema for LLM response validation."""

    model_config = ConfigDict(extra="ignore")

    scores: list[_RawScore] = Field(default_factory=list)
    summary: str = ""
    predictions: list[_RawPrediction] = Field(default_factory=list)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class PortfolioAnalyzer:
    """
    Gemini-backed portfolio analysis.

    Usage:
        analyzer = PortfolioAnalyzer(api_key_provider=credentials.get_api_key)
        result = analyzer.analyze("Ahmed", ["plans/weekly plan.pdf"], parts)
    """

    SYSTEM_INSTRUCTION = """You are an expert educational supervisor auditing digital teacher portfolios.

You have two sources of information:
1. The file listing: shows what evidence EXISTS and whether the portfolio is organised.
2. The attached evidence samples (if any): show the QUALITY of the work (is it real, complete, or empty).

Score the teacher against every criterion you are given, 0-10:
- 0-2: the evidence is entirely missing from the listing
- 3-5: files exist by name but the attached content is weak or incomplete, or the organisation is random
- 6-8: files exist and are organised, and the content you could read is good
- 9-10: comprehensive files, and the content you could read is highly professional

Rules:
- Every justification must cite concrete evidence. If you read an attached file, say so.
  If you judged from the file name only, say so.
- Be strict but fair.
- Write justifications, summary and predictions in formal {language}.
"""

    PROMPT_TEMPLATE = """Teacher: {name}

1. Folder structure (file listing):
---
{file_listing}
---

2. Criteria:
{criteria}

Return ONLY a JSON object with this shape:
{{
  "scores": [{{"criteriaId": "<criterion id>", "score": <0-10>, "justification": "<text>"}}],
  "summary": "<overall assessment>",
  "predictions": [{{"category": "<text>", "description": "<text>", "impact": "High|Medium|Low", "confidence": <0-100>, "timeframe": "<text>"}}]
}}
Include exactly one score per criterion id."""

    def __init__(
        self,
        criteria: Sequence[Criterion] | None = None,
        api_key_provider: Callable[[], str | None] | None = None,
        language: str = REPORT_LANGUAGE,
    ):
        self.criteria = tuple(criteria) if criteria is not None else get_criteria()
        self._api_key_provider = api_key_provider
        self._system_instruction = self.SYSTEM_INSTRUCTION.format(language=language)

    def analyze(
        self, name: str, file_paths: Sequence[str], parts: Sequence[ContentPart]
    ) -> AnalysisResult:
        """
        Analyze one subject's portfolio.

        Raises:
            LLMCredentialError: Key missing or rejected
            LLMCallError: Any other failure, including unparseable output
        """
        api_key = self._api_key_provider() if self._api_key_provider else None
        prompt = self._build_prompt(name, file_paths)

        with time_block("analysis.llm_call"):
            response_text = call_llm(
                prompt,
                parts,
                api_key=api_key,
                system_instruction=self._system_instruction,
                counter_prefix="analysis",
            )

        result = self._parse_response(response_text)
        counter("analysis.success")
        log_event(
            "analysis.completed",
            files=len(file_paths),
            attachments=len(parts),
            scored=len(result.scores),
            **get_version_metadata(),
        )
        return result

    def _build_prompt(self, name: str, file_paths: Sequence[str]) -> str:
        file_listing = "\n".join(list(file_paths)[:MAX_PROMPT_PATHS])
        criteria = "\n".join(
            f"- ID: {c.id}\n  Name: {c.name}\n  Description: {c.description}\n"
            f"  Target evidence: {c.evidence_examples}"
            for c in self.criteria
        )
        return self.PROMPT_TEMPLATE.format(name=name, file_listing=file_listing, criteria=criteria)

    def _parse_response(self, response_text: str) -> AnalysisResult:
        """Validate the JSON, clamp scores to 0-10, drop duplicates and unknown ids."""
        json_text = response_text.strip()
        if json_text.startswith("```"):
            counter("analysis.code_fence_fallback")
            json_text = re.sub(r"^```(?:json)?\n?", "", json_text)
            json_text = re.sub(r"\n?```$", "", json_text)

        try:
            validated = AnalysisResponseSchema.model_validate(json.loads(json_text))
        except (json.JSONDecodeError, ValidationError) as e:
            counter("analysis.parse_error")
            logger.warning("Failed to parse analysis response: %s", e)
            raise LLMCallError(f"Malformed analysis response: {e}") from e

        known_ids = {c.id for c in self.criteria}
        scores: list[ScoreEntry] = []
        seen: set[str] = set()
        for raw in validated.scores:
            if raw.criterion_id not in known_ids:
                counter("analysis.unknown_criterion")
                continue
            if raw.criterion_id in seen:
                continue
            seen.add(raw.criterion_id)
            scores.append(
                ScoreEntry(
                    criterion_id=raw.criterion_id,
                    score=_clamp(raw.score, 0, 10),
                    justification=raw.justification,
                )
            )

        predictions: list[Prediction] = []
        for raw in validated.predictions:
            if not raw.description:
                continue
            try:
                impact = ImpactLevel(raw.impact.strip().capitalize())
            except ValueError:
                impact = ImpactLevel.MEDIUM
            predictions.append(
                Prediction(
                    category=raw.category,
                    description=raw.description,
                    impact=impact,
                    confidence=int(_clamp(raw.confidence, 0, 100)),
                    timeframe=raw.timeframe,
                )
            )

        return AnalysisResult(scores=scores, summary=validated.summary, predictions=predictions)
