from typing import Any, Optional

from pydantic import BaseModel

from agents.models import AnalysisResult, CriteriaBreakdown, Criterion, QuestionFix

__all__ = [
    "AnalysisResult",
    "ApiError",
    "CriteriaBreakdown",
    "Criterion",
    "ErrorEnvelope",
    "QuestionFix",
]


class ApiError(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class ErrorEnvelope(BaseModel):
    error: ApiError
