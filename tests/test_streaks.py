"""
Tests for the Streak Tracker.

Covered:
  - satisfied → current + 1, best follows
  - not satisfied → current 0, best kept
  - missing record starts from 0 / 0
  - same or older period is a no-op
  - both streak policies; empty day never satisfies
  - milestone detection
"""
from datetime import date, timedelta

import pytest

from app.models.quest import QuestState
from app.services.quest_evaluator import QuestOutcome
from app.services.streaks import (
    StreakPolicy,
    StreakSnapshot,
    advance_streak,
    milestone_reached,
    period_satisfied,
)

DAY = date(2091, 5, 1)


def _outcome(passed=True, verified=True) -> QuestOutcome:
    return QuestOutcome(
        quest_id=1,
        title="q",
        state=QuestState.passed if passed else QuestState.failed,
        xp_earned=50 if passed else 0,
        attempt_id=1,
        observed_value=1.0,
        verified=verified,
    )


class TestAdvanceStreak:
    def test_first_satisfied_period(self):
        s = advance_streak(None, True, period=DAY)
        assert (s.current, s.best, s.last_period) == (1, 1, DAY)

    def test_first_unsatisfied_period(self):
        s = advance_streak(None, False, period=DAY)
        assert (s.current, s.best) == (0, 0)

    def test_satisfied_increments_and_raises_best(self):
        s = advance_streak(StreakSnapshot(current=4, best=4), True)
        assert (s.current, s.best) == (5, 5)

    def test_satisfied_below_best_keeps_best(self):
        s = advance_streak(StreakSnapshot(current=2, best=9), True)
        assert (s.current, s.best) == (3, 9)

    def test_reset_keeps_best(self):
        s = advance_streak(StreakSnapshot(current=7, best=7), False)
        assert (s.current, s.best) == (0, 7)

    def test_same_period_is_noop(self):
        s1 = advance_streak(StreakSnapshot(), True, period=DAY)
        s2 = advance_streak(s1, True, period=DAY)
        s3 = advance_streak(s1, False, period=DAY)
        assert s2 == s1
        assert s3 == s1

    def test_older_period_is_noop(self):
        s1 = advance_streak(StreakSnapshot(), True, period=DAY)
        assert advance_streak(s1, False, period=DAY - timedelta(days=3)) == s1

    def test_best_never_below_current(self):
        s = StreakSnapshot()
        for i, ok in enumerate([True, True, False, True, True, True, False, True]):
            s = advance_streak(s, ok, period=DAY + timedelta(days=i))
            assert s.best >= s.current >= 0
        assert s.best == 3


class TestPeriodSatisfied:
    def test_all_verified_passed(self):
        outcomes = [_outcome(), _outcome()]
        assert period_satisfied(outcomes, StreakPolicy.ALL_VERIFIED_PASSED) is True

    def test_unverified_pass_breaks_strict_gate(self):
        outcomes = [_outcome(), _outcome(verified=False)]
        assert period_satisfied(outcomes, StreakPolicy.ALL_VERIFIED_PASSED) is False
        assert period_satisfied(outcomes, StreakPolicy.ALL_PASSED) is True

    def test_any_failure_breaks_both(self):
        outcomes = [_outcome(), _outcome(passed=False)]
        assert period_satisfied(outcomes, StreakPolicy.ALL_VERIFIED_PASSED) is False
        assert period_satisfied(outcomes, StreakPolicy.ALL_PASSED) is False

    def test_empty_is_not_satisfied(self):
        assert period_satisfied([], StreakPolicy.ALL_PASSED) is False

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            period_satisfied([_outcome()], "most_passed")


class TestMilestones:
    @pytest.mark.parametrize("value", [3, 7, 14, 30, 60, 100, 365])
    def test_hits(self, value):
        before = StreakSnapshot(current=value - 1, best=value - 1)
        after = StreakSnapshot(current=value, best=value)
        assert milestone_reached(before, after) == value

    def test_non_milestone(self):
        assert milestone_reached(StreakSnapshot(current=3), StreakSnapshot(current=4)) is None

    def test_unchanged_streak_not_repeated(self):
        s = StreakSnapshot(current=7, best=7)
        assert milestone_reached(s, s) is None
