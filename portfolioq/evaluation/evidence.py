"""
Evidence selection.

Gemini only sees a handful of files per subject, so the likely
high-value documents are picked by a cheap filename heuristic: reports,
plans, analyses and test results score higher, PDFs get a bonus.
Selection is not content-aware.
"""

from __future__ import annotations

import os
from collections.abc import Sequence

from portfolioq.config import EVIDENCE_TOP_K, MAX_EVIDENCE_BYTES
from portfolioq.evaluation.models import ContentPart, EvidenceFile
from portfolioq.observability.logging import get_logger
from portfolioq.observability.telemetry import counter

logger = get_logger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
KEYWORD_POINTS = 10
PDF_BONUS = 5

# English and Arabic names commonly used for portfolio evidence
EVIDENCE_KEYWORDS: tuple[str, ...] = (
    "report",
    "plan",
    "analysis",
    "test",
    "result",
    "log",
    "form",
    "card",
    "evidence",
    "تقرير",
    "خطة",
    "تحليل",
    "نتائج",
    "اختبار",
    "سجل",
    "كشف",
    "استمارة",
    "بطاقة",
    "شواهد",
    "إنجاز",
)


def is_candidate(file: EvidenceFile) -> bool:
    """PDF or image under the inline size limit."""
    media_type = (file.media_type or "").lower()
    if media_type != PDF_MEDIA_TYPE and not media_type.startswith("image/"):
        return False
    return file.size < MAX_EVIDENCE_BYTES


def score_candidate(file: EvidenceFile) -> int:
    """Filename relevance: +10 per keyword contained in the name, +5 for PDF."""
    name = os.path.basename(file.name.replace("\\", "/")).lower()
    score = sum(KEYWORD_POINTS for keyword in EVIDENCE_KEYWORDS if keyword in name)
    if (file.media_type or "").lower() == PDF_MEDIA_TYPE:
        score += PDF_BONUS
    return score


def select_evidence(files: Sequence[EvidenceFile], limit: int = EVIDENCE_TOP_K) -> list[EvidenceFile]:
    """Top `limit` candidates by score; ties keep input order."""
    candidates = [f for f in files if is_candidate(f)]
    # sorted() is stable
    ranked = sorted(candidates, key=score_candidate, reverse=True)
    selected = ranked[:limit]
    logger.debug(
        "Selected %d of %d candidates (%d files)", len(selected), len(candidates), len(files)
    )
    return selected


def extract_content_parts(files: Sequence[EvidenceFile]) -> list[ContentPart]:
    """Read selected files into inline parts. Unreadable files are skipped."""
    parts: list[ContentPart] = []
    for file in files:
        try:
            data = file.read_bytes()
        except Exception as e:
            counter("evidence.read_failed")
            logger.warning("Skipping unreadable evidence %s: %s", file.name, e)
            continue
        parts.append(ContentPart(media_type=file.media_type, data=data))
    return parts
