import math
from typing import Any, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

CriterionStatus = Literal["excellent", "good", "warning", "critical"]


def _round_score(value: Any) -> Any:
    # The model sometimes returns 72.0 or 71.5 for integer scores
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"score must be a finite number, got {value}")
        return int(round(value))
    return value


class WireModel(BaseModel):
    """Snake_case attributes, camelCase keys on the wire."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Criterion(WireModel):
    # Status is reported by the model; it is not derived from score.
    score: int = Field(ge=0, le=100)
    title: str
    description: str
    status: CriterionStatus

    @field_validator("score", mode="before")
    @classmethod
    def round_score(cls, value):
        return _round_score(value)


class QuestionFix(WireModel):
    question_id: str = Field(alias="questionId")
    issue: str
    suggestion: str


class CriteriaBreakdown(WireModel):
    real_context: Criterion = Field(alias="realContext")  # 真實情境
    problem_solving: Criterion = Field(alias="problemSolving")  # 問題解決
    interdisciplinary: Criterion  # 跨領域/學科素養
    technical_quality: Criterion = Field(alias="technicalQuality")  # 一般命題原則
    editorial_quality: Criterion = Field(alias="editorialQuality")  # 文句與格式檢核
    content_review: Criterion = Field(alias="contentReview")  # 內容審查


class AnalysisResult(WireModel):
    overall_score: int = Field(alias="overallScore", ge=0, le=100)
    blooms_level: str = Field(alias="bloomsLevel")
    summary: str
    strengths: List[str]
    weaknesses: List[str]
    suggestions: List[str]
    question_fixes: List[QuestionFix] = Field(alias="questionImprovements")
    criteria: CriteriaBreakdown = Field(alias="criteriaBreakdown")

    @field_validator("overall_score", mode="before")
    @classmethod
    def round_overall_score(cls, value):
        return _round_score(value)
