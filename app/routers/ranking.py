"""
Ranking router — honest assessment against category benchmarks.

GET    /ranking/categories                  — benchmark categories and their metrics
GET    /ranking/categories/{id}/questions   — assessment questions for a category
POST   /ranking/classify                    — goal text → category
POST   /ranking/assess                      — metric values → rank + percentile
GET    /ranking/assessments/latest          — caller's most recent assessment
POST   /ranking/sessions                    — start a multi-step assessment
GET    /ranking/sessions/{id}               — read a session
POST   /ranking/sessions/{id}/answers       — answer and rank
DELETE /ranking/sessions/{id}               — discard a session
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.errors import AssessmentNotFoundError
from app.db.base import get_db
from app.models.assessment import AssessmentSession, HonestAssessmentRecord
from app.routers.deps import current_user_id
from app.schemas.common import ErrorResponse
from app.schemas.ranking import (
    AssessedMetricResponse,
    AssessmentRecordResponse,
    AssessmentResponse,
    AssessRequest,
    CategoryResponse,
    ClassifyRequest,
    ClassifyResponse,
    MetricDefinitionResponse,
    QuestionResponse,
    SessionAnswers,
    SessionCreate,
    SessionResponse,
)
from app.services.assessment import (
    assess_and_record,
    decode_json,
    expire_session,
    get_session,
    latest_assessment,
    start_session,
    submit_answers,
)
from app.services.benchmarks import get_categories, get_category
from app.services.classifier import classify_goal, classify_goal_from_rules
from app.services.ranking import HonestAssessment, get_assessment_questions

router = APIRouter(prefix="/ranking", tags=["ranking"])

_NOT_FOUND = {"model": ErrorResponse, "description": "Unknown category."}


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _questions(category_id: str) -> list[QuestionResponse]:
    return [
        QuestionResponse(id=q.id, question=q.question, type=q.type, unit=q.unit, required=q.required)
        for q in get_assessment_questions(category_id)
    ]


def _assessment_to_response(
    a: HonestAssessment, assessment_id: Optional[int] = None
) -> AssessmentResponse:
    return AssessmentResponse(
        assessment_id=assessment_id,
        category_id=a.category_id,
        category_name=a.category_name,
        rank=a.rank,
        rank_label=a.rank_label,
        percentile=a.percentile,
        metrics=[
            AssessedMetricResponse(
                metric_id=m.metric_id,
                name=m.name,
                value=m.value,
                unit=m.unit,
                importance=m.importance,
                percentile=m.percentile,
                elite_value=m.elite_value,
            )
            for m in a.metrics
        ],
        top_one_percent_looks_like=a.top_one_percent_looks_like,
        gap_to_top=a.gap_to_top,
        estimated_years_to_top=a.estimated_years_to_top,
    )


def _record_to_response(r: HonestAssessmentRecord) -> AssessmentRecordResponse:
    return AssessmentRecordResponse(
        id=r.id,
        category_id=r.category_id,
        goal_text=r.goal_text,
        rank=r.rank,
        percentile=r.percentile,
        metric_values=decode_json(r.metric_values, {}),
        breakdown=decode_json(r.breakdown, []),
        assessed_at=r.assessed_at,
    )


def _session_to_response(
    s: AssessmentSession, assessment: Optional[AssessmentResponse] = None
) -> SessionResponse:
    return SessionResponse(
        session_id=s.id,
        category_id=s.category_id,
        category_name=get_category(s.category_id).name,
        goal_text=s.goal_text,
        stage=s.stage,
        answers=decode_json(s.answers, {}),
        questions=_questions(s.category_id),
        expires_at=s.expires_at,
        assessment=assessment,
    )


# ---------------------------------------------------------------------------
# Categories / questions / classify
# ---------------------------------------------------------------------------

@router.get(
    "/categories",
    response_model=list[CategoryResponse],
    summary="List benchmark categories",
)
def list_categories():
    return [
        CategoryResponse(
            id=c.id,
            name=c.name,
            description=c.description,
            metrics=[
                MetricDefinitionResponse(
                    id=m.id,
                    name=m.name,
                    unit=m.unit,
                    importance=m.importance,
                    higher_is_better=m.higher_is_better,
                )
                for m in c.metrics
            ],
        )
        for c in get_categories()
    ]


@router.get(
    "/categories/{category_id}/questions",
    response_model=list[QuestionResponse],
    summary="Assessment questions for a category",
    responses={404: _NOT_FOUND},
)
def category_questions(category_id: str):
    """One question per metric; `required` marks critical metrics."""
    return _questions(category_id)


@router.post(
    "/classify",
    response_model=ClassifyResponse,
    summary="Pick the benchmark category for a goal",
)
def classify(payload: ClassifyRequest):
    """Ordered keyword match; falls back to `general_fitness`."""
    result = classify_goal_from_rules(payload.goal_text)
    return ClassifyResponse(
        category_id=result.category_id,
        category_name=get_category(result.category_id).name,
        rule=result.rule_name,
    )


# ---------------------------------------------------------------------------
# Assess / history
# ---------------------------------------------------------------------------

@router.post(
    "/assess",
    response_model=AssessmentResponse,
    summary="Rank a set of metric values",
    responses={
        200: {"description": "Rank, percentile and per-metric breakdown. Stored in history."},
        404: _NOT_FOUND,
        422: {"model": ErrorResponse, "description": "Invalid or missing metric values."},
    },
)
def assess(
    payload: AssessRequest,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """
    Each metric is placed in the first benchmark band that contains it and
    interpolated inside that rank's percentile window. The overall
    percentile is the importance-weighted mean (critical 3, important 2,
    supporting 1) of the metrics supplied.

    | Rank | Percentile |
    |---|---|
    | S | ≥ 99.9 |
    | A | ≥ 99 |
    | B | ≥ 90 |
    | C | ≥ 75 |
    | D | ≥ 50 |
    | E | ≥ 20 |
    | F | < 20 |
    """
    category_id = payload.category_id or classify_goal(payload.goal_text)
    assessment, record = assess_and_record(
        db=db,
        user_id=user_id,
        category_id=category_id,
        values=payload.metrics,
        goal_text=payload.goal_text,
    )
    return _assessment_to_response(assessment, record.id)


@router.get(
    "/assessments/latest",
    response_model=AssessmentRecordResponse,
    summary="Most recent assessment for the caller",
    responses={404: {"model": ErrorResponse, "description": "No assessment yet."}},
)
def latest(
    category_id: Optional[str] = Query(default=None, description="Restrict to one category."),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    record = latest_assessment(db=db, user_id=user_id, category_id=category_id)
    if record is None:
        raise AssessmentNotFoundError(user_id)
    return _record_to_response(record)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a multi-step assessment",
    responses={404: _NOT_FOUND},
)
def create_session(
    payload: SessionCreate,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """Classifies the goal (unless `category_id` is given) and returns its questions."""
    session = start_session(
        db=db, user_id=user_id, goal_text=payload.goal_text, category_id=payload.category_id
    )
    return _session_to_response(session)


@router.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    summary="Read an assessment session",
    responses={
        404: {"model": ErrorResponse, "description": "Session not found."},
        410: {"model": ErrorResponse, "description": "Session expired."},
    },
)
def read_session(
    session_id: str,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return _session_to_response(get_session(db=db, user_id=user_id, session_id=session_id))


@router.post(
    "/sessions/{session_id}/answers",
    response_model=SessionResponse,
    summary="Answer questions and get ranked",
    responses={
        404: {"model": ErrorResponse, "description": "Session not found."},
        410: {"model": ErrorResponse, "description": "Session expired."},
        422: {"model": ErrorResponse, "description": "Invalid metric values."},
    },
)
def answer_session(
    session_id: str,
    payload: SessionAnswers,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    session, assessment, record = submit_answers(
        db=db, user_id=user_id, session_id=session_id, answers=payload.answers
    )
    return _session_to_response(session, _assessment_to_response(assessment, record.id))


@router.delete(
    "/sessions/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Discard an assessment session",
    responses={404: {"model": ErrorResponse, "description": "Session not found."}},
)
def delete_session(
    session_id: str,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    expire_session(db=db, user_id=user_id, session_id=session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
