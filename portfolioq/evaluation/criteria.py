"""
Evaluation criteria.

The criterion set is fixed per deployment: eleven weighted dimensions of a
teacher's professional portfolio. Weights are percentages and must sum to
100; that invariant belongs to the set, so it is checked when a set is
loaded, not by the score aggregator.

A deployment can replace the defaults with a JSON file (PORTFOLIOQ_CRITERIA_PATH)
holding a list of objects with the Criterion fields.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, TypeAdapter

from portfolioq.config import CRITERIA_PATH
from portfolioq.observability.logging import get_logger

logger = get_logger(__name__)


class Criterion(BaseModel):
    """One weighted evaluation dimension."""

    id: str
    name: str
    weight: float = Field(ge=0, le=100)
    description: str = ""
    evidence_examples: str = Field(default="", description="Prompt guidance only")


class CriteriaConfigError(ValueError):
    """Raised when a criterion set violates its invariants."""


DEFAULT_CRITERIA: tuple[Criterion, ...] = (
    Criterion(
        id="job_duties",
        name="Performing job duties",
        weight=10,
        description="Commitment to professional ethics, attendance and school regulations.",
        evidence_examples="attendance record, duty schedule, waiting-class log, professional charter",
    ),
    Criterion(
        id="professional_community",
        name="Engaging with the professional community",
        weight=10,
        description="Participation in professional learning communities and peer exchange.",
        evidence_examples="peer visit exchange, lesson study, workshop attendance, PLC minutes",
    ),
    Criterion(
        id="parent_engagement",
        name="Engaging with parents",
        weight=10,
        description="Communication with parents about student progress.",
        evidence_examples="parent communication log, meeting invitations, parent notices",
    ),
    Criterion(
        id="teaching_strategies",
        name="Varying teaching strategies",
        weight=10,
        description="Use of diverse, student-centred teaching strategies.",
        evidence_examples="lesson preparation, strategy brief, active learning photos",
    ),
    Criterion(
        id="learner_outcomes",
        name="Improving learner outcomes",
        weight=10,
        description="Remedial and enrichment plans and evidence of improvement.",
        evidence_examples="remedial plan, enrichment plan, honour board, results comparison",
    ),
    Criterion(
        id="learning_plan",
        name="Preparing and delivering the learning plan",
        weight=10,
        description="Curriculum distribution and lesson planning.",
        evidence_examples="curriculum distribution, lesson plans, weekly plan",
    ),
    Criterion(
        id="learning_technology",
        name="Using technology and teaching aids",
        weight=10,
        description="Integration of digital tools and appropriate teaching resources.",
        evidence_examples="interactive lessons, digital platform screenshots, educational videos",
    ),
    Criterion(
        id="learning_environment",
        name="Preparing the learning environment",
        weight=5,
        description="Physical and psychological preparation of the classroom.",
        evidence_examples="classroom layout photos, motivational boards, class rules",
    ),
    Criterion(
        id="classroom_management",
        name="Classroom management",
        weight=5,
        description="Behaviour management and student motivation.",
        evidence_examples="behaviour chart, reward system, seating plan",
    ),
    Criterion(
        id="results_analysis",
        name="Analysing learner results and diagnosing levels",
        weight=10,
        description="Diagnostic testing and analysis of assessment results.",
        evidence_examples="diagnostic test, results analysis, level classification, charts",
    ),
    Criterion(
        id="assessment_methods",
        name="Varying assessment methods",
        weight=10,
        description="Use of diverse formative and summative assessment tools.",
        evidence_examples="quizzes, performance tasks, projects, portfolios, assessment rubrics",
    ),
)


def validate_criteria(criteria: tuple[Criterion, ...] | list[Criterion]) -> None:
    """Check the set-level invariants: non-empty, unique ids, weights summing to 100."""
    if not criteria:
        raise CriteriaConfigError("criterion set is empty")

    ids = [c.id for c in criteria]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise CriteriaConfigError(f"duplicate criterion ids: {', '.join(duplicates)}")

    total = sum(c.weight for c in criteria)
    if abs(total - 100) > 1e-6:
        raise CriteriaConfigError(f"criterion weights sum to {total:g}, expected 100")


def load_criteria(path: str | Path) -> tuple[Criterion, ...]:
    """Load and validate a criterion set from a JSON file."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    criteria = tuple(TypeAdapter(list[Criterion]).validate_python(raw))
    validate_criteria(criteria)
    logger.info("Loaded %d criteria from %s", len(criteria), path)
    return criteria


@lru_cache(maxsize=1)
def get_criteria() -> tuple[Criterion, ...]:
    """Active criterion set: the configured file, else the defaults."""
    if CRITERIA_PATH:
        return load_criteria(CRITERIA_PATH)
    return DEFAULT_CRITERIA
