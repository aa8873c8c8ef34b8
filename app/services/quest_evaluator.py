"""
Quest Outcome Evaluator — per-quest pass/fail and XP.

Rules
-----
  * Only attempts inside the quest's scheduled day (UTC, inclusive) count.
    The most recent one is authoritative.
  * No attempt                    -> FAILED, 0 XP
  * observed_value >= target      -> PASSED (equality passes)
  * otherwise                     -> FAILED, 0 XP

  PASS XP = floor(base_xp * multiplier + streak_bonus)
      multiplier   = 1.0 verified, 0.4 self-reported
      streak_bonus = min(streak * bonus_per_day, max_bonus)

  The streak passed in is the value *before* today's update.

Idempotency
-----------
A quest already in PASSED/FAILED is never re-scored. Its outcome echoes the
stored state and xp_awarded with `already_evaluated=True`; the orchestrator
does not count that XP again.

Pure functions over plain dataclasses. No DB, no clock.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, ROUND_FLOOR
from typing import Iterable, Optional

from app.core.config import settings
from app.core.errors import QuestIntegrityError
from app.models.quest import AttemptResult, QuestState


# ---------------------------------------------------------------------------
# Input / output types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class XpRules:
    base_xp: int = 50
    verified_multiplier: float = 1.0
    unverified_multiplier: float = 0.4
    streak_bonus_per_day: int = 2
    max_streak_bonus: int = 30

    @classmethod
    def from_settings(cls) -> "XpRules":
        return cls(
            base_xp=settings.BASE_XP,
            verified_multiplier=settings.VERIFIED_MULTIPLIER,
            unverified_multiplier=settings.UNVERIFIED_MULTIPLIER,
            streak_bonus_per_day=settings.STREAK_BONUS_PER_DAY,
            max_streak_bonus=settings.MAX_STREAK_BONUS,
        )


@dataclass
class ScheduledQuest:
    id: int
    user_id: str
    title: str
    target_value: float
    scheduled_for: date
    metric_key: str = "manual"
    state: QuestState = QuestState.assigned
    xp_awarded: int = 0


@dataclass(frozen=True)
class Attempt:
    id: int
    quest_id: int
    observed_value: float
    verified: bool
    attempted_at: datetime
    source: str = "manual"
    result: Optional[AttemptResult] = None   # set once the attempt decided a quest


@dataclass
class QuestOutcome:
    quest_id: int
    title: str
    state: QuestState
    xp_earned: int
    attempt_id: Optional[int]        # governing attempt, None if none in window
    observed_value: Optional[float]
    verified: bool                   # False when there is no attempt
    already_evaluated: bool = False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _as_utc(ts: datetime) -> datetime:
    # Naive timestamps (SQLite drops tzinfo) are stored as UTC.
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def day_window(day: date) -> tuple[datetime, datetime]:
    """Inclusive [start, end] bounds of a calendar day in UTC."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(day, time.max, tzinfo=timezone.utc)
    return start, end


def latest_attempt_in_window(attempts: Iterable[Attempt], day: date) -> Optional[Attempt]:
    start, end = day_window(day)
    in_window = [a for a in attempts if start <= _as_utc(a.attempted_at) <= end]
    if not in_window:
        return None
    return max(in_window, key=lambda a: (_as_utc(a.attempted_at), a.id))


def calculate_quest_xp(verified: bool, current_streak: int, rules: XpRules) -> int:
    multiplier = rules.verified_multiplier if verified else rules.unverified_multiplier
    streak_bonus = min(max(current_streak, 0) * rules.streak_bonus_per_day, rules.max_streak_bonus)
    # Decimal keeps 50 * 0.4 from landing on 19.999... before the floor.
    raw = Decimal(rules.base_xp) * Decimal(str(multiplier)) + Decimal(streak_bonus)
    return int(raw.to_integral_value(rounding=ROUND_FLOOR))


def check_quest_integrity(
    quest: ScheduledQuest,
    user_id: Optional[str] = None,
    day: Optional[date] = None,
) -> None:
    """Raise QuestIntegrityError if the quest cannot be scored as stored."""
    target = quest.target_value
    if target is None or not isinstance(target, (int, float)) or isinstance(target, bool):
        raise QuestIntegrityError(quest.id, "target value is not numeric")
    if not math.isfinite(target):
        raise QuestIntegrityError(quest.id, "target value is not finite")
    if target <= 0:
        raise QuestIntegrityError(quest.id, f"target value must be positive, got {target}")
    if user_id is not None and quest.user_id != user_id:
        raise QuestIntegrityError(quest.id, "quest belongs to another user")
    if day is not None and quest.scheduled_for != day:
        raise QuestIntegrityError(
            quest.id, f"quest is scheduled for {quest.scheduled_for}, not {day}"
        )


# ---------------------------------------------------------------------------
# Public — evaluate one quest
# ---------------------------------------------------------------------------

def evaluate_quest(
    quest: ScheduledQuest,
    attempts: Iterable[Attempt],
    current_streak: int,
    rules: XpRules,
) -> QuestOutcome:
    check_quest_integrity(quest)
    attempts = list(attempts)

    if quest.state in (QuestState.passed, QuestState.failed):
        # echo the attempt that was scored, not a later resubmission
        attempt = latest_attempt_in_window(
            (a for a in attempts if a.result is not None), quest.scheduled_for
        )
        return QuestOutcome(
            quest_id=quest.id,
            title=quest.title,
            state=QuestState(quest.state),
            xp_earned=quest.xp_awarded if quest.state == QuestState.passed else 0,
            attempt_id=attempt.id if attempt else None,
            observed_value=attempt.observed_value if attempt else None,
            verified=bool(attempt and attempt.verified),
            already_evaluated=True,
        )

    attempt = latest_attempt_in_window(attempts, quest.scheduled_for)
    if attempt is None:
        return QuestOutcome(
            quest_id=quest.id,
            title=quest.title,
            state=QuestState.failed,
            xp_earned=0,
            attempt_id=None,
            observed_value=None,
            verified=False,
        )

    if attempt.observed_value >= quest.target_value:
        return QuestOutcome(
            quest_id=quest.id,
            title=quest.title,
            state=QuestState.passed,
            xp_earned=calculate_quest_xp(attempt.verified, current_streak, rules),
            attempt_id=attempt.id,
            observed_value=attempt.observed_value,
            verified=attempt.verified,
        )

    return QuestOutcome(
        quest_id=quest.id,
        title=quest.title,
        state=QuestState.failed,
        xp_earned=0,
        attempt_id=attempt.id,
        observed_value=attempt.observed_value,
        verified=attempt.verified,
    )
