"""
Domain models for portfolio evaluation.

A Subject is one evaluated person (one uploaded folder). Its evidence file
handles are session-scoped: they are carried in memory for content reading
and never serialized.
"""

from __future__ import annotations

import mimetypes
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def new_subject_id() -> str:
    return str(uuid.uuid4())


class SubjectStatus(str, Enum):
    """Lifecycle of one analysis attempt."""

    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    ERROR = "error"


# completed/error only go back to pending through an explicit re-upload or
# re-analysis request; analyzing -> pending is the credential rollback.
ALLOWED_TRANSITIONS: dict[SubjectStatus, frozenset[SubjectStatus]] = {
    SubjectStatus.PENDING: frozenset({SubjectStatus.ANALYZING}),
    SubjectStatus.ANALYZING: frozenset(
        {SubjectStatus.COMPLETED, SubjectStatus.ERROR, SubjectStatus.PENDING}
    ),
    SubjectStatus.COMPLETED: frozenset({SubjectStatus.PENDING}),
    SubjectStatus.ERROR: frozenset({SubjectStatus.PENDING}),
}


class InvalidTransitionError(ValueError):
    """Raised when a status change is not in ALLOWED_TRANSITIONS."""

    def __init__(self, subject_id: str, current: SubjectStatus, target: SubjectStatus):
        super().__init__(f"subject {subject_id}: {current.value} -> {target.value} not allowed")
        self.subject_id = subject_id
        self.current = current
        self.target = target


def check_transition(subject_id: str, current: SubjectStatus, target: SubjectStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(subject_id, current, target)


# ---------------------------------------------------------------------------
# Evidence files
# ---------------------------------------------------------------------------


@runtime_checkable
class EvidenceFile(Protocol):
    """A readable evidence file handle."""

    name: str
    media_type: str
    size: int

    def read_bytes(self) -> bytes: ...


def guess_media_type(name: str) -> str:
    media_type, _ = mimetypes.guess_type(name)
    return media_type or "application/octet-stream"


@dataclass
class PathEvidenceFile:
    """Evidence stored on local disk (CLI runs and spooled API uploads)."""

    path: Path
    media_type: str = ""
    size: int = -1
    name: str = ""

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        if not self.name:
            self.name = self.path.name
        if not self.media_type:
            self.media_type = guess_media_type(self.name)
        if self.size < 0:
            self.size = self.path.stat().st_size

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


@dataclass
class BytesEvidenceFile:
    """Evidence already held in memory."""

    name: str
    data: bytes
    media_type: str = ""

    def __post_init__(self) -> None:
        if not self.media_type:
            self.media_type = guess_media_type(self.name)

    @property
    def size(self) -> int:
        return len(self.data)

    def read_bytes(self) -> bytes:
        return self.data


@dataclass(frozen=True)
class ContentPart:
    """Binary evidence content sent to Gemini as inline data."""

    media_type: str
    data: bytes


# ---------------------------------------------------------------------------
# Analysis results
# ---------------------------------------------------------------------------


class ImpactLevel(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ScoreEntry(BaseModel):
    """Raw score for one criterion."""

    criterion_id: str
    score: float = Field(ge=0, le=10)
    justification: str = ""


class Prediction(BaseModel):
    """Forward-looking prediction produced with the analysis."""

    category: str
    description: str
    impact: ImpactLevel = ImpactLevel.MEDIUM
    confidence: int = Field(default=50, ge=0, le=100)
    timeframe: str = ""


class AnalysisResult(BaseModel):
    """What the remote analysis call returns for one subject."""

    scores: list[ScoreEntry] = Field(default_factory=list)
    summary: str = ""
    predictions: list[Prediction] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Subject
# ---------------------------------------------------------------------------


class Subject(BaseModel):
    """
    One evaluated subject.

    name is the merge key across uploads; id is unique within the active set.
    file_objects is excluded from every dump, so persisted subjects come back
    without handles and need a fresh upload before re-analysis.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=False)

    id: str = Field(default_factory=new_subject_id)
    name: str
    folder_path: str = ""
    files: list[str] = Field(default_factory=list, description="Relative evidence paths")
    file_objects: list[Any] = Field(default_factory=list, exclude=True, repr=False)
    scores: list[ScoreEntry] | None = None
    total_score: int | None = None
    summary: str | None = None
    predictions: list[Prediction] | None = None
    status: SubjectStatus = SubjectStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("name cannot be empty")
        return v

    def score_for(self, criterion_id: str) -> float:
        for entry in self.scores or []:
            if entry.criterion_id == criterion_id:
                return entry.score
        return 0.0

    def has_evidence_handles(self) -> bool:
        return bool(self.file_objects)
