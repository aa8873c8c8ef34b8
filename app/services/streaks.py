"""
Streak Tracker — consecutive fully-satisfied evaluation periods.

  satisfied     -> current += 1, best = max(best, current)
  not satisfied -> current = 0, best unchanged

A streak records the last period applied to it. Applying that period again,
or an older one, returns it unchanged, so re-running a day never
double-counts.

What "satisfied" means is a policy:
  all_verified_passed — every quest passed AND every governing attempt
                        was device-verified (reference behaviour)
  all_passed          — every quest passed; provenance ignored
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, Optional

from app.models.quest import QuestState
from app.services.quest_evaluator import QuestOutcome


class StreakPolicy:
    ALL_VERIFIED_PASSED = "all_verified_passed"
    ALL_PASSED          = "all_passed"


_POLICIES = (StreakPolicy.ALL_VERIFIED_PASSED, StreakPolicy.ALL_PASSED)

# current streak values that earn a milestone event
STREAK_MILESTONES = (3, 7, 14, 30, 60, 100, 365)


@dataclass(frozen=True)
class StreakSnapshot:
    current: int = 0
    best: int = 0
    last_period: Optional[date] = None


def period_satisfied(outcomes: Iterable[QuestOutcome], policy: str) -> bool:
    if policy not in _POLICIES:
        raise ValueError(f"Unknown streak policy: {policy!r}")
    outcomes = list(outcomes)
    if not outcomes:
        return False
    all_passed = all(o.state == QuestState.passed for o in outcomes)
    if policy == StreakPolicy.ALL_PASSED:
        return all_passed
    return all_passed and all(o.verified for o in outcomes)


def advance_streak(
    streak: Optional[StreakSnapshot],
    satisfied: bool,
    period: Optional[date] = None,
) -> StreakSnapshot:
    """Apply one period's result. A missing record starts at 0/0."""
    streak = streak or StreakSnapshot()
    if period is not None and streak.last_period is not None and period <= streak.last_period:
        return streak
    if satisfied:
        current = streak.current + 1
        return replace(streak, current=current, best=max(streak.best, current), last_period=period)
    return replace(streak, current=0, last_period=period)


def milestone_reached(before: StreakSnapshot, after: StreakSnapshot) -> Optional[int]:
    if after.current != before.current and after.current in STREAK_MILESTONES:
        return after.current
    return None
