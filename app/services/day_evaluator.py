"""
Day Evaluator — scores every quest a user had scheduled on one day.

Pipeline
--------
  1. No quests            -> empty result, nothing mutated.
  2. Integrity pass       -> every quest checked up front (owner, day,
                             target > 0). One bad quest rejects the whole
                             day before anything is scored.
  3. Outcome per quest    -> quest_evaluator, using the streak value from
                             *before* this day.
  4. XP                   -> sum of newly PASSED quests.
  5. Streak               -> advanced iff the period is satisfied under the
                             configured policy.
  6. Level                -> apply_xp with the summed XP.

Events (ordered)
----------------
  quest_passed / quest_failed   one per newly evaluated quest, quest order
  level_up                      one per level gained, ascending
  streak_milestone              when the new streak hits a milestone

Re-running a day whose quests are all terminal and whose streak already
records the day returns the same numbers and no events.

Pure: state comes in as snapshots and goes out in DayResult. The caller
persists it and owns per-user serialisation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Iterable, Optional

from app.core.config import settings
from app.models.quest import QuestState
from app.services.leveling import LevelCurve, apply_xp, xp_required_for_level
from app.services.quest_evaluator import (
    Attempt,
    QuestOutcome,
    ScheduledQuest,
    XpRules,
    check_quest_integrity,
    evaluate_quest,
)
from app.services.streaks import (
    StreakPolicy,
    StreakSnapshot,
    advance_streak,
    milestone_reached,
    period_satisfied,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event type constants
# ---------------------------------------------------------------------------

class EventType:
    QUEST_PASSED     = "quest_passed"
    QUEST_FAILED     = "quest_failed"
    LEVEL_UP         = "level_up"
    STREAK_MILESTONE = "streak_milestone"


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

AttemptLookup = Callable[[int], Iterable[Attempt]]


@dataclass(frozen=True)
class LevelSnapshot:
    level: int = 1
    xp: int = 0


@dataclass(frozen=True)
class DayRules:
    xp: XpRules = field(default_factory=XpRules)
    streak_policy: str = StreakPolicy.ALL_VERIFIED_PASSED
    curve: Optional[LevelCurve] = None

    @classmethod
    def from_settings(cls) -> "DayRules":
        return cls(xp=XpRules.from_settings(), streak_policy=settings.STREAK_POLICY)


@dataclass
class EngineEvent:
    type: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class DayResult:
    user_id: str
    day: date
    level: int
    xp: int
    xp_to_next_level: int      # threshold of the current level
    xp_gained: int
    levels_gained: int
    streak: StreakSnapshot
    satisfied: bool
    outcomes: list[QuestOutcome]
    events: list[EngineEvent]

    @property
    def streak_current(self) -> int:
        return self.streak.current

    @property
    def streak_best(self) -> int:
        return self.streak.best


# ---------------------------------------------------------------------------
# Event builders
# ---------------------------------------------------------------------------

def _quest_event(outcome: QuestOutcome) -> EngineEvent:
    if outcome.state == QuestState.passed:
        return EngineEvent(
            type=EventType.QUEST_PASSED,
            message=f'"{outcome.title}" +{outcome.xp_earned} XP',
            data={"quest_id": outcome.quest_id, "xp": outcome.xp_earned},
        )
    return EngineEvent(
        type=EventType.QUEST_FAILED,
        message=f'"{outcome.title}" failed',
        data={"quest_id": outcome.quest_id},
    )


def _level_up_events(start_level: int, levels_gained: int, xp_gained: int) -> list[EngineEvent]:
    return [
        EngineEvent(
            type=EventType.LEVEL_UP,
            message=f"Reached level {start_level + i}",
            data={"new_level": start_level + i, "xp_gained": xp_gained},
        )
        for i in range(1, levels_gained + 1)
    ]


# ---------------------------------------------------------------------------
# Public — main entry point
# ---------------------------------------------------------------------------

def evaluate_day(
    user_id: str,
    day: date,
    quests: Iterable[ScheduledQuest],
    attempt_lookup: AttemptLookup,
    level: Optional[LevelSnapshot] = None,
    streak: Optional[StreakSnapshot] = None,
    rules: Optional[DayRules] = None,
) -> DayResult:
    level = level or LevelSnapshot()
    streak = streak or StreakSnapshot()
    rules = rules or DayRules.from_settings()
    quests = list(quests)

    if not quests:
        logger.debug("No quests for user=%s day=%s", user_id, day)
        return DayResult(
            user_id=user_id,
            day=day,
            level=level.level,
            xp=level.xp,
            xp_to_next_level=xp_required_for_level(level.level, rules.curve),
            xp_gained=0,
            levels_gained=0,
            streak=streak,
            satisfied=False,
            outcomes=[],
            events=[],
        )

    for quest in quests:
        check_quest_integrity(quest, user_id=user_id, day=day)

    outcomes = [
        evaluate_quest(quest, attempt_lookup(quest.id), streak.current, rules.xp)
        for quest in quests
    ]
    fresh = [o for o in outcomes if not o.already_evaluated]
    xp_gained = sum(o.xp_earned for o in fresh if o.state == QuestState.passed)

    satisfied = period_satisfied(outcomes, rules.streak_policy)
    new_streak = advance_streak(streak, satisfied, period=day)
    progress = apply_xp(level.level, level.xp, xp_gained, rules.curve)

    events = [_quest_event(o) for o in fresh]
    events.extend(_level_up_events(level.level, progress.levels_gained, xp_gained))
    milestone = milestone_reached(streak, new_streak)
    if milestone is not None:
        events.append(EngineEvent(
            type=EventType.STREAK_MILESTONE,
            message=f"{milestone}-day streak",
            data={"streak": milestone},
        ))

    logger.info(
        "Evaluated day user=%s day=%s quests=%d new=%d xp=+%d level=%d->%d streak=%d",
        user_id, day, len(outcomes), len(fresh), xp_gained,
        level.level, progress.level, new_streak.current,
    )

    return DayResult(
        user_id=user_id,
        day=day,
        level=progress.level,
        xp=progress.xp,
        xp_to_next_level=xp_required_for_level(progress.level, rules.curve),
        xp_gained=xp_gained,
        levels_gained=progress.levels_gained,
        streak=new_streak,
        satisfied=satisfied,
        outcomes=outcomes,
        events=events,
    )
