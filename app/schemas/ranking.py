"""
Honest-ranking request/response schemas.

GET  /ranking/categories                 → CategoryResponse[]
GET  /ranking/categories/{id}/questions  → QuestionResponse[]
POST /ranking/classify                   → ClassifyRequest / ClassifyResponse
POST /ranking/assess                     → AssessRequest / AssessmentResponse
GET  /ranking/assessments/latest         → AssessmentRecordResponse
/ranking/sessions/*                      → SessionCreate / SessionResponse
"""
from datetime import datetime
from typing import Any, Optional, Union
from pydantic import BaseModel, Field, model_validator

MetricValue = Union[bool, float]


class MetricDefinitionResponse(BaseModel):
    id: str
    name: str
    unit: str
    importance: str = Field(description='"critical" | "important" | "supporting"')
    higher_is_better: bool


class CategoryResponse(BaseModel):
    id: str
    name: str
    description: str
    metrics: list[MetricDefinitionResponse]


class QuestionResponse(BaseModel):
    id: str
    question: str
    type: str = Field(description='"number" | "boolean"')
    unit: str
    required: bool = Field(description="True for critical metrics.")


class ClassifyRequest(BaseModel):
    goal_text: str = Field(min_length=1, examples=["I want to run a marathon"])


class ClassifyResponse(BaseModel):
    category_id: str
    category_name: str
    rule: Optional[str] = Field(
        default=None, description="Keyword rule that matched; null for the fallback."
    )


class AssessRequest(BaseModel):
    category_id: Optional[str] = Field(
        default=None, description="Benchmark category. Classified from goal_text when omitted."
    )
    goal_text: Optional[str] = None
    metrics: dict[str, MetricValue] = Field(
        examples=[{"marathon_time": 200, "weekly_mileage": 60}]
    )

    @model_validator(mode="after")
    def _category_or_goal(self) -> "AssessRequest":
        if not self.category_id and not self.goal_text:
            raise ValueError("Provide category_id or goal_text.")
        return self


class AssessedMetricResponse(BaseModel):
    metric_id: str
    name: str
    value: float
    unit: str
    importance: str
    percentile: Optional[float] = Field(
        default=None, description="Null for metrics without benchmark ranges."
    )
    elite_value: str = Field(description='A-rank range, e.g. "165-210 minutes".')


class AssessmentResponse(BaseModel):
    assessment_id: Optional[int] = None
    category_id: str
    category_name: str
    rank: str
    rank_label: str
    percentile: float
    metrics: list[AssessedMetricResponse]
    top_one_percent_looks_like: str
    gap_to_top: list[str]
    estimated_years_to_top: float


class AssessmentRecordResponse(BaseModel):
    id: int
    category_id: str
    goal_text: Optional[str] = None
    rank: str
    percentile: float
    metric_values: dict[str, Any]
    breakdown: list[dict[str, Any]]
    assessed_at: Optional[datetime] = None


class SessionCreate(BaseModel):
    goal_text: str = Field(min_length=1, examples=["Deadlift 2x bodyweight"])
    category_id: Optional[str] = None


class SessionAnswers(BaseModel):
    answers: dict[str, MetricValue]


class SessionResponse(BaseModel):
    session_id: str
    category_id: str
    category_name: str
    goal_text: str
    stage: str = Field(description='"questions" | "complete"')
    answers: dict[str, Any]
    questions: list[QuestionResponse]
    expires_at: datetime
    assessment: Optional[AssessmentResponse] = None
