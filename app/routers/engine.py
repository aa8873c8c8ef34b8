"""
Engine router — day evaluation and level progress.

POST /engine/evaluate-day     — score a day's quests, update XP / level / streak
GET  /progress/status         — current level, XP and streak
POST /progress/apply-xp       — pure XP calculator, nothing persisted
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.routers.deps import current_user_id
from app.schemas.common import ErrorResponse
from app.schemas.progression import (
    ApplyXpRequest,
    ApplyXpResponse,
    DayResultResponse,
    EngineEventResponse,
    QuestOutcomeResponse,
    StatusWindowResponse,
)
from app.services.day_evaluator import DayResult
from app.services.leveling import apply_xp, xp_required_for_level
from app.services.progression import evaluate_day_for_user, get_status_window, parse_day

router = APIRouter(tags=["engine"])


# ---------------------------------------------------------------------------
# Serialization helper
# ---------------------------------------------------------------------------

def _day_result_to_response(r: DayResult) -> DayResultResponse:
    return DayResultResponse(
        user_id=r.user_id,
        day=r.day,
        level=r.level,
        xp=r.xp,
        xp_to_next_level=r.xp_to_next_level,
        xp_gained=r.xp_gained,
        levels_gained=r.levels_gained,
        streak_current=r.streak_current,
        streak_best=r.streak_best,
        satisfied=r.satisfied,
        outcomes=[
            QuestOutcomeResponse(
                quest_id=o.quest_id,
                title=o.title,
                state=o.state.value,
                xp_earned=o.xp_earned,
                attempt_id=o.attempt_id,
                observed_value=o.observed_value,
                verified=o.verified,
                already_evaluated=o.already_evaluated,
            )
            for o in r.outcomes
        ],
        events=[EngineEventResponse(type=e.type, message=e.message, data=e.data) for e in r.events],
    )


# ---------------------------------------------------------------------------
# POST /engine/evaluate-day
# ---------------------------------------------------------------------------

@router.post(
    "/engine/evaluate-day",
    response_model=DayResultResponse,
    summary="Evaluate all quests scheduled for a day",
    responses={
        200: {"description": "Outcomes, new level/XP/streak and the events raised."},
        409: {"model": ErrorResponse, "description": "Progress changed concurrently; retry."},
        422: {"model": ErrorResponse, "description": "Malformed day or a quest that cannot be scored."},
    },
)
def evaluate_day_endpoint(
    day: Optional[str] = Query(
        default=None,
        description="Day to evaluate (YYYY-MM-DD). Defaults to today (UTC).",
        examples=["2026-10-19"],
    ),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """
    Score every quest the user had scheduled on `day`.

    ### Rules
    - Latest attempt inside the day wins; no attempt → **failed**.
    - `observed_value >= target_value` → **passed** (equality passes).
    - XP per pass = `floor(50 × multiplier + min(streak × 2, 30))`,
      multiplier 1.0 verified / 0.4 self-reported.
    - The streak advances only when every quest passed (and, under the default
      policy, every attempt was verified); otherwise it resets to 0.

    Safe to call repeatedly: quests already scored are echoed with
    `already_evaluated=true` and no XP or streak change is applied twice.
    """
    target = parse_day(day) if day else datetime.now(timezone.utc).date()
    result = evaluate_day_for_user(db=db, user_id=user_id, day=target)
    return _day_result_to_response(result)


# ---------------------------------------------------------------------------
# GET /progress/status
# ---------------------------------------------------------------------------

@router.get(
    "/progress/status",
    response_model=StatusWindowResponse,
    summary="Current level, XP and streak",
    responses={200: {"description": "Status window for the calling user."}},
)
def progress_status(
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    """Users with no history start at level 1, 0 XP, streak 0."""
    w = get_status_window(db=db, user_id=user_id)
    return StatusWindowResponse(
        user_id=w.user_id,
        level=w.level,
        xp=w.xp,
        xp_to_next_level=w.xp_to_next_level,
        streak=w.streak,
        best_streak=w.best_streak,
    )


# ---------------------------------------------------------------------------
# POST /progress/apply-xp
# ---------------------------------------------------------------------------

@router.post(
    "/progress/apply-xp",
    response_model=ApplyXpResponse,
    summary="Preview an XP gain (no state change)",
    responses={
        200: {"description": "Level and XP after rollover."},
        422: {"model": ErrorResponse, "description": "Negative XP or invalid level."},
    },
)
def apply_xp_endpoint(payload: ApplyXpRequest):
    """
    Apply `xp_gained` on top of (`level`, `xp`) using the configured curve
    `250·L² + 750·L`, rolling over as many levels as the gain covers.
    """
    p = apply_xp(payload.level, payload.xp, payload.xp_gained)
    return ApplyXpResponse(
        level=p.level,
        xp=p.xp,
        levels_gained=p.levels_gained,
        xp_to_next_level=xp_required_for_level(p.level),
    )
