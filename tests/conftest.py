"""
Pytest configuration for PortfolioQ tests

Provides fixtures and fakes shared across all test files
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import pytest

from portfolioq.evaluation.criteria import DEFAULT_CRITERIA, Criterion
from portfolioq.evaluation.models import (
    AnalysisResult,
    BytesEvidenceFile,
    ContentPart,
    ScoreEntry,
)
from portfolioq.infrastructure.kv_store import InMemoryKeyValueStore
from portfolioq.observability.telemetry import reset_telemetry


class FakeAnalyzer:
    """Analyzer stand-in: scores every criterion with a fixed raw score."""

    def __init__(
        self,
        criteria: Sequence[Criterion] = DEFAULT_CRITERIA,
        raw_score: float = 8,
        behavior: Callable[[str], None] | None = None,
    ):
        self.criteria = tuple(criteria)
        self.raw_score = raw_score
        self.behavior = behavior
        self.calls: list[tuple[str, list[str], list[ContentPart]]] = []

    def analyze(
        self, name: str, file_paths: Sequence[str], parts: Sequence[ContentPart]
    ) -> AnalysisResult:
        self.calls.append((name, list(file_paths), list(parts)))
        if self.behavior is not None:
            self.behavior(name)
        return AnalysisResult(
            scores=[
                ScoreEntry(criterion_id=c.id, score=self.raw_score, justification="ok")
                for c in self.criteria
            ],
            summary=f"Summary for {name}",
        )


@pytest.fixture(autouse=True)
def _clean_telemetry():
    reset_telemetry()
    yield
    reset_telemetry()


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def fake_analyzer():
    return FakeAnalyzer()


@pytest.fixture
def make_file():
    """Factory for in-memory evidence files."""

    def _make(name: str, size: int = 1024, media_type: str = "") -> BytesEvidenceFile:
        return BytesEvidenceFile(name=name, data=b"x" * size, media_type=media_type)

    return _make


@pytest.fixture
def analyzer_factory():
    """FakeAnalyzer class, for tests that need custom behavior."""
    return FakeAnalyzer
