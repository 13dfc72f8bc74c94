"""PortfolioQ - batch evaluation of evidence portfolios with Gemini"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports for the evaluation package
def __getattr__(name: str):
    """
    Lazy imports to avoid loading the Gemini SDKs when only importing lightweight modules.
    """
    if name in ("Subject", "SubjectStatus"):
        from portfolioq.evaluation import models

        if name == "Subject":
            return models.Subject
        if name == "SubjectStatus":
            return models.SubjectStatus

    if name == "EvaluationService":
        from portfolioq.evaluation.service import EvaluationService

        return EvaluationService

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "EvaluationService",
    "Subject",
    "SubjectStatus",
]
