"""
Progression request/response schemas.

POST /engine/evaluate-day      → DayResultResponse
GET  /progress/status          → StatusWindowResponse
POST /progress/apply-xp        → ApplyXpRequest / ApplyXpResponse
POST /quests, GET /quests      → QuestCreate / QuestResponse
POST /quests/{id}/attempts     → AttemptCreate / AttemptResponse
"""
from datetime import date, datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Day evaluation
# ---------------------------------------------------------------------------

class QuestOutcomeResponse(BaseModel):
    quest_id: int
    title: str
    state: str = Field(description='"passed" | "failed"')
    xp_earned: int
    attempt_id: Optional[int] = Field(
        default=None, description="Governing attempt, null if none in the day window."
    )
    observed_value: Optional[float] = None
    verified: bool
    already_evaluated: bool = Field(
        description="True when the quest was scored by an earlier run; its XP is not re-counted."
    )


class EngineEventResponse(BaseModel):
    type: str = Field(
        description='"quest_passed" | "quest_failed" | "level_up" | "streak_milestone"'
    )
    message: str
    data: dict[str, Any] = Field(default_factory=dict)


class DayResultResponse(BaseModel):
    user_id: str
    day: date
    level: int
    xp: int
    xp_to_next_level: int = Field(description="XP threshold of the current level.")
    xp_gained: int
    levels_gained: int
    streak_current: int
    streak_best: int
    satisfied: bool = Field(description="Whether the day satisfied the streak policy.")
    outcomes: list[QuestOutcomeResponse]
    events: list[EngineEventResponse]


# ---------------------------------------------------------------------------
# Status window / XP calculator
# ---------------------------------------------------------------------------

class StatusWindowResponse(BaseModel):
    user_id: str
    level: int
    xp: int
    xp_to_next_level: int
    streak: int
    best_streak: int


class ApplyXpRequest(BaseModel):
    level: int = Field(default=1, ge=1, examples=[1])
    xp: int = Field(default=0, ge=0, examples=[900])
    xp_gained: int = Field(ge=0, examples=[150])


class ApplyXpResponse(BaseModel):
    level: int
    xp: int
    levels_gained: int
    xp_to_next_level: int


# ---------------------------------------------------------------------------
# Quests and attempts
# ---------------------------------------------------------------------------

class QuestCreate(BaseModel):
    title: str = Field(min_length=1, max_length=256, examples=["Walk 5000 steps"])
    target_value: float = Field(gt=0, allow_inf_nan=False, examples=[5000])
    scheduled_for: date
    metric_key: str = Field(default="manual", max_length=64, examples=["steps"])
    description: Optional[str] = None


class QuestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    title: str
    description: Optional[str] = None
    target_value: float
    metric_key: str
    scheduled_for: date
    state: str
    xp_awarded: int
    evaluated_at: Optional[datetime] = None


class AttemptCreate(BaseModel):
    observed_value: float = Field(allow_inf_nan=False, examples=[5200])
    verified: bool = Field(
        default=False, description="True for device-attested data, false for self-report."
    )
    source: str = Field(default="manual", max_length=32, examples=["health_connect"])
    attempted_at: Optional[datetime] = Field(
        default=None, description="Defaults to now (UTC)."
    )


class AttemptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quest_id: int
    observed_value: float
    verified: bool
    source: str
    result: Optional[str] = None
    attempted_at: datetime
