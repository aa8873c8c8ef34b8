"""
Tests for the progression service (database adapter around the Day Evaluator).

Covered scenarios:
  A) pass → quest state, attempt tag, ledger row, LevelState, Streak persisted
  B) idempotency → second run adds no XP, no ledger row, no streak change
  C) empty day → no rows created
  D) bad quest → whole day rejected, nothing written
  E) consecutive days grow the streak; a failed day resets it
  F) stale version → ConcurrentEvaluationError, rollback
  G) status window defaults and after evaluation
  H) attempts on another user's quest are rejected

Each test uses its own user id so nothing leaks across the shared SQLite file.
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.config import settings
from app.core.errors import ConcurrentEvaluationError, InvalidDayError, QuestIntegrityError, QuestNotFoundError
from app.models.progression import LevelState, Streak, XpLedger
from app.models.quest import AttemptResult, Quest, QuestAttempt, QuestState
from app.services.progression import (
    _write_level,
    create_quest,
    evaluate_day_for_user,
    get_status_window,
    list_quests,
    parse_day,
    record_attempt,
)

DAY = date(2093, 1, 10)


def _at(day: date, hour: int = 18) -> datetime:
    return datetime(day.year, day.month, day.day, hour, 0, tzinfo=timezone.utc)


def _quest_with_attempt(db, user_id, day=DAY, target=5000, observed=5000, verified=True):
    quest = create_quest(db, user_id, "Walk", target, day, metric_key="steps")
    if observed is not None:
        record_attempt(db, user_id, quest.id, observed, verified=verified, attempted_at=_at(day))
    return quest


def _ledger(db, user_id):
    return db.query(XpLedger).filter(XpLedger.user_id == user_id).all()


# ---------------------------------------------------------------------------
# A / B
# ---------------------------------------------------------------------------

class TestEvaluateAndPersist:
    def test_pass_is_persisted(self, db, user_id):
        quest = _quest_with_attempt(db, user_id)
        result = evaluate_day_for_user(db, user_id, DAY)

        assert result.xp_gained == 50
        assert result.streak_current == 1

        db.expire_all()
        stored = db.get(Quest, quest.id)
        assert stored.state == QuestState.passed
        assert stored.xp_awarded == 50
        assert stored.evaluated_at is not None

        attempt = db.query(QuestAttempt).filter(QuestAttempt.quest_id == quest.id).one()
        assert attempt.result == AttemptResult.passed

        ledger = _ledger(db, user_id)
        assert [(row.quest_id, row.amount) for row in ledger] == [(quest.id, 50)]

        level = db.get(LevelState, user_id)
        assert (level.level, level.xp, level.version) == (1, 50, 1)

        streak = db.query(Streak).filter(Streak.user_id == user_id).one()
        assert streak.streak_key == settings.STREAK_KEY
        assert (streak.current, streak.best, streak.last_period) == (1, 1, DAY)

    def test_second_run_is_noop(self, db, user_id):
        _quest_with_attempt(db, user_id)
        first = evaluate_day_for_user(db, user_id, DAY)
        second = evaluate_day_for_user(db, user_id, DAY)

        assert second.xp_gained == 0
        assert second.events == []
        assert (second.level, second.xp) == (first.level, first.xp)
        assert second.streak_current == first.streak_current == 1
        assert all(o.already_evaluated for o in second.outcomes)
        assert len(_ledger(db, user_id)) == 1

        db.expire_all()
        assert db.get(LevelState, user_id).version == 1

    def test_rerun_reports_scored_attempt_not_resubmission(self, db, user_id):
        quest = _quest_with_attempt(db, user_id, observed=6000)
        scored_id = evaluate_day_for_user(db, user_id, DAY).outcomes[0].attempt_id
        record_attempt(db, user_id, quest.id, 10, verified=False, attempted_at=_at(DAY, hour=22))

        rerun = evaluate_day_for_user(db, user_id, DAY).outcomes[0]
        assert rerun.already_evaluated is True
        assert (rerun.attempt_id, rerun.observed_value) == (scored_id, 6000)

    def test_failed_quest_tags_attempt(self, db, user_id):
        quest = _quest_with_attempt(db, user_id, observed=10)
        result = evaluate_day_for_user(db, user_id, DAY)
        assert result.outcomes[0].state == QuestState.failed

        db.expire_all()
        attempt = db.query(QuestAttempt).filter(QuestAttempt.quest_id == quest.id).one()
        assert attempt.result == AttemptResult.failed
        assert _ledger(db, user_id) == []
        # no XP, so LevelState is not created yet
        assert db.get(LevelState, user_id) is None


# ---------------------------------------------------------------------------
# C / D
# ---------------------------------------------------------------------------

class TestNoOpAndRejection:
    def test_empty_day_creates_nothing(self, db, user_id):
        result = evaluate_day_for_user(db, user_id, DAY)
        assert result.outcomes == []
        assert db.get(LevelState, user_id) is None
        assert db.query(Streak).filter(Streak.user_id == user_id).count() == 0

    def test_bad_quest_rejects_day(self, db, user_id):
        good = _quest_with_attempt(db, user_id)
        bad = create_quest(db, user_id, "Broken", 1, DAY)
        db.query(Quest).filter(Quest.id == bad.id).update({"target_value": 0})
        db.commit()

        with pytest.raises(QuestIntegrityError):
            evaluate_day_for_user(db, user_id, DAY)

        db.expire_all()
        assert db.get(Quest, good.id).state == QuestState.assigned
        assert _ledger(db, user_id) == []
        assert db.get(LevelState, user_id) is None


# ---------------------------------------------------------------------------
# E
# ---------------------------------------------------------------------------

class TestStreakAcrossDays:
    def test_streak_grows_then_resets(self, db, user_id):
        days = [DAY + timedelta(days=i) for i in range(4)]
        for d in days[:3]:
            _quest_with_attempt(db, user_id, day=d)
            evaluate_day_for_user(db, user_id, d)

        # day 2 used the pre-day streak of 1: 50 + 2
        xp = sorted(row.amount for row in _ledger(db, user_id))
        assert xp == [50, 52, 54]

        status = get_status_window(db, user_id)
        assert (status.streak, status.best_streak) == (3, 3)

        _quest_with_attempt(db, user_id, day=days[3], observed=None)
        result = evaluate_day_for_user(db, user_id, days[3])
        assert result.streak_current == 0
        assert result.streak_best == 3

    def test_self_reported_pass_breaks_strict_streak(self, db, user_id):
        _quest_with_attempt(db, user_id, verified=False)
        result = evaluate_day_for_user(db, user_id, DAY)
        assert result.xp_gained == 20
        assert result.streak_current == 0


# ---------------------------------------------------------------------------
# F
# ---------------------------------------------------------------------------

class TestOptimisticVersion:
    def test_stale_level_write_is_refused(self, db, user_id):
        _quest_with_attempt(db, user_id)
        result = evaluate_day_for_user(db, user_id, DAY)

        row = db.get(LevelState, user_id)
        # another writer bumps the version behind our back
        db.query(LevelState).filter(LevelState.user_id == user_id).update(
            {"version": row.version + 1}, synchronize_session=False
        )
        db.commit()

        stale = LevelState(user_id=user_id, level=1, xp=50, version=1)
        assert _write_level(db, user_id, stale, result) is False
        db.rollback()

    def test_conflict_raises_and_rolls_back(self, db, user_id, monkeypatch):
        _quest_with_attempt(db, user_id, day=DAY)
        evaluate_day_for_user(db, user_id, DAY)
        quest = _quest_with_attempt(db, user_id, day=DAY + timedelta(days=1))

        monkeypatch.setattr("app.services.progression._write_level", lambda *a, **k: False)
        with pytest.raises(ConcurrentEvaluationError) as exc:
            evaluate_day_for_user(db, user_id, DAY + timedelta(days=1))
        assert exc.value.http_status == 409

        db.expire_all()
        assert db.get(Quest, quest.id).state == QuestState.assigned
        assert len(_ledger(db, user_id)) == 1


# ---------------------------------------------------------------------------
# G / H and helpers
# ---------------------------------------------------------------------------

class TestStatusAndQuests:
    def test_status_defaults(self, db, user_id):
        status = get_status_window(db, user_id)
        assert (status.level, status.xp, status.xp_to_next_level) == (1, 0, 1000)
        assert (status.streak, status.best_streak) == (0, 0)

    def test_list_quests_by_day(self, db, user_id):
        create_quest(db, user_id, "A", 1, DAY)
        create_quest(db, user_id, "B", 1, DAY + timedelta(days=1))
        assert [q.title for q in list_quests(db, user_id, DAY)] == ["A"]
        assert len(list_quests(db, user_id)) == 2

    def test_attempt_on_foreign_quest(self, db, user_id):
        quest = create_quest(db, "someone-else", "A", 1, DAY)
        with pytest.raises(QuestNotFoundError):
            record_attempt(db, user_id, quest.id, 5)

    def test_parse_day(self):
        assert parse_day("2093-01-10") == DAY
        with pytest.raises(InvalidDayError):
            parse_day("10/01/2093")
