"""
Quests router — the minimal write side that feeds the engine.

POST /quests                      — schedule a quest
GET  /quests                      — list the caller's quests (optionally one day)
POST /quests/{quest_id}/attempts  — report an observed value
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.routers.deps import current_user_id
from app.schemas.common import ErrorResponse
from app.schemas.progression import AttemptCreate, AttemptResponse, QuestCreate, QuestResponse
from app.services.progression import create_quest, list_quests, record_attempt

router = APIRouter(prefix="/quests", tags=["quests"])


@router.post(
    "",
    response_model=QuestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a quest for a day",
    responses={201: {"description": "Quest created in state `assigned`."}},
)
def create_quest_endpoint(
    payload: QuestCreate,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return create_quest(
        db=db,
        user_id=user_id,
        title=payload.title,
        target_value=payload.target_value,
        scheduled_for=payload.scheduled_for,
        metric_key=payload.metric_key,
        description=payload.description,
    )


@router.get(
    "",
    response_model=list[QuestResponse],
    summary="List quests",
    responses={200: {"description": "Newest day first, then by id."}},
)
def list_quests_endpoint(
    day: Optional[date] = Query(
        default=None,
        description="Only quests scheduled on this day.",
        examples=["2026-10-19"],
    ),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return list_quests(db=db, user_id=user_id, day=day)


@router.post(
    "/{quest_id}/attempts",
    response_model=AttemptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report an observed value for a quest",
    responses={
        201: {"description": "Attempt stored; scored on the next evaluation of its day."},
        404: {"model": ErrorResponse, "description": "Quest not found for this user."},
    },
)
def create_attempt_endpoint(
    quest_id: int,
    payload: AttemptCreate,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """
    Only the latest attempt inside the quest's day counts. Attempts on a quest
    that was already evaluated are stored but never re-scored.
    """
    return record_attempt(
        db=db,
        user_id=user_id,
        quest_id=quest_id,
        observed_value=payload.observed_value,
        verified=payload.verified,
        source=payload.source,
        attempted_at=payload.attempted_at,
    )
