"""
PortfolioQ evaluation pipeline - grouping, merge, evidence selection,
analysis and scoring.
"""

from portfolioq.evaluation.models import (
    ALLOWED_TRANSITIONS,
    AnalysisResult,
    BytesEvidenceFile,
    ContentPart,
    EvidenceFile,
    InvalidTransitionError,
    PathEvidenceFile,
    Prediction,
    ScoreEntry,
    Subject,
    SubjectStatus,
)
from portfolioq.evaluation.criteria import DEFAULT_CRITERIA, Criterion, get_criteria
from portfolioq.evaluation.grouping import SubjectGroup, UploadEntry, group_by_subject
from portfolioq.evaluation.merge import MergeResult, merge_subjects
from portfolioq.evaluation.evidence import (
    extract_content_parts,
    is_candidate,
    score_candidate,
    select_evidence,
)
from portfolioq.evaluation.scoring import compute_total_score, summarize_completed
from portfolioq.evaluation.store import SubjectNotFoundError, SubjectStore
from portfolioq.evaluation.task import AnalysisTask, HaltSignal, TaskOutcome
from portfolioq.evaluation.scheduler import BatchScheduler, RunSummary

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AnalysisResult",
    "AnalysisTask",
    "BatchScheduler",
    "BytesEvidenceFile",
    "ContentPart",
    "Criterion",
    "DEFAULT_CRITERIA",
    "EvidenceFile",
    "HaltSignal",
    "InvalidTransitionError",
    "MergeResult",
    "PathEvidenceFile",
    "Prediction",
    "RunSummary",
    "ScoreEntry",
    "Subject",
    "SubjectGroup",
    "SubjectNotFoundError",
    "SubjectStatus",
    "SubjectStore",
    "TaskOutcome",
    "UploadEntry",
    "compute_total_score",
    "extract_content_parts",
    "get_criteria",
    "group_by_subject",
    "is_candidate",
    "merge_subjects",
    "score_candidate",
    "select_evidence",
    "summarize_completed",
]
