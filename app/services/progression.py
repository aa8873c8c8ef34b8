"""
Progression service — runs the Day Evaluator against the database.

Flow for one (user, day)
------------------------
  1. Take the in-process per-user lock.
  2. Load the day's quests, their attempts, LevelState and the streak row.
  3. evaluate_day() on plain snapshots (no DB access inside).
  4. Write back in one transaction:
       quests          state / xp_awarded / evaluated_at (new outcomes only)
       quest_attempts  result tag on each governing attempt
       xp_ledger       one row per newly passed quest (quest_id unique)
       level_state     only when XP was gained
       streaks         only when the streak changed
  5. level_state / streaks are updated with
       UPDATE ... WHERE version = <version read>
     Zero rows matched means another writer got there first: roll back and
     raise ConcurrentEvaluationError. Nothing is partially written.

Rows are created lazily: LevelState on the first XP award, the streak row
on the first evaluated day.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    ConcurrentEvaluationError,
    InvalidDayError,
    QuestIntegrityError,
    QuestNotFoundError,
)
from app.core.locks import user_locks
from app.models.progression import LevelState, Streak, XpLedger, XpSource
from app.models.quest import AttemptResult, Quest, QuestAttempt, QuestState
from app.services.day_evaluator import DayResult, DayRules, LevelSnapshot, evaluate_day
from app.services.leveling import xp_required_for_level
from app.services.quest_evaluator import Attempt, ScheduledQuest
from app.services.streaks import StreakSnapshot

logger = logging.getLogger(__name__)


@dataclass
class StatusWindow:
    user_id: str
    level: int
    xp: int
    xp_to_next_level: int
    streak: int
    best_streak: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_day(raw: str) -> date:
    """Parse a YYYY-MM-DD string or raise InvalidDayError."""
    try:
        return date.fromisoformat(raw)
    except (TypeError, ValueError):
        raise InvalidDayError(str(raw)) from None


def _to_scheduled(quest: Quest) -> ScheduledQuest:
    return ScheduledQuest(
        id=quest.id,
        user_id=quest.user_id,
        title=quest.title,
        target_value=quest.target_value,
        scheduled_for=quest.scheduled_for,
        metric_key=quest.metric_key,
        state=QuestState(quest.state),
        xp_awarded=quest.xp_awarded,
    )


def _to_attempt(attempt: QuestAttempt) -> Attempt:
    return Attempt(
        id=attempt.id,
        quest_id=attempt.quest_id,
        observed_value=attempt.observed_value,
        verified=attempt.verified,
        attempted_at=attempt.attempted_at,
        source=attempt.source,
        result=attempt.result,
    )


def _get_level_row(db: Session, user_id: str) -> Optional[LevelState]:
    return db.query(LevelState).filter(LevelState.user_id == user_id).first()


def _get_streak_row(db: Session, user_id: str) -> Optional[Streak]:
    return (
        db.query(Streak)
        .filter(Streak.user_id == user_id, Streak.streak_key == settings.STREAK_KEY)
        .first()
    )


def _write_level(
    db: Session, user_id: str, row: Optional[LevelState], result: DayResult
) -> bool:
    if row is None:
        db.add(LevelState(user_id=user_id, level=result.level, xp=result.xp, version=1))
        return True
    updated = (
        db.query(LevelState)
        .filter(LevelState.user_id == user_id, LevelState.version == row.version)
        .update(
            {"level": result.level, "xp": result.xp, "version": row.version + 1},
            synchronize_session=False,
        )
    )
    return updated == 1


def _write_streak(
    db: Session, user_id: str, row: Optional[Streak], snapshot: StreakSnapshot
) -> bool:
    if row is None:
        db.add(Streak(
            user_id=user_id,
            streak_key=settings.STREAK_KEY,
            current=snapshot.current,
            best=snapshot.best,
            last_period=snapshot.last_period,
            version=1,
        ))
        return True
    updated = (
        db.query(Streak)
        .filter(Streak.id == row.id, Streak.version == row.version)
        .update(
            {
                "current": snapshot.current,
                "best": snapshot.best,
                "last_period": snapshot.last_period,
                "version": row.version + 1,
            },
            synchronize_session=False,
        )
    )
    return updated == 1


# ---------------------------------------------------------------------------
# Public — evaluate a day
# ---------------------------------------------------------------------------

def evaluate_day_for_user(
    db: Session,
    user_id: str,
    day: date,
    rules: Optional[DayRules] = None,
    now: Optional[datetime] = None,
) -> DayResult:
    """
    Evaluate and persist one user's day. Idempotent per (user, day).

    Raises QuestIntegrityError (no state changed) and
    ConcurrentEvaluationError (rolled back).
    """
    now = now or _utcnow()
    with user_locks.hold(user_id):
        quests = (
            db.query(Quest)
            .filter(Quest.user_id == user_id, Quest.scheduled_for == day)
            .order_by(Quest.id)
            .all()
        )
        attempts_by_quest: dict[int, list[QuestAttempt]] = defaultdict(list)
        if quests:
            for attempt in (
                db.query(QuestAttempt)
                .filter(QuestAttempt.quest_id.in_([q.id for q in quests]))
                .all()
            ):
                attempts_by_quest[attempt.quest_id].append(attempt)

        level_row = _get_level_row(db, user_id)
        streak_row = _get_streak_row(db, user_id)
        level = LevelSnapshot(level_row.level, level_row.xp) if level_row else LevelSnapshot()
        streak = (
            StreakSnapshot(streak_row.current, streak_row.best, streak_row.last_period)
            if streak_row else StreakSnapshot()
        )

        try:
            result = evaluate_day(
                user_id,
                day,
                [_to_scheduled(q) for q in quests],
                lambda quest_id: [_to_attempt(a) for a in attempts_by_quest[quest_id]],
                level=level,
                streak=streak,
                rules=rules,
            )
        except QuestIntegrityError as exc:
            logger.warning("Rejected day user=%s day=%s: %s", user_id, day, exc.message)
            raise

        if not quests:
            return result

        quests_by_id = {q.id: q for q in quests}
        attempts_by_id = {a.id: a for rows in attempts_by_quest.values() for a in rows}
        for outcome in result.outcomes:
            if outcome.already_evaluated:
                continue
            quest = quests_by_id[outcome.quest_id]
            quest.state = outcome.state
            quest.xp_awarded = outcome.xp_earned
            quest.evaluated_at = now
            if outcome.attempt_id is not None:
                attempts_by_id[outcome.attempt_id].result = (
                    AttemptResult.passed if outcome.state == QuestState.passed
                    else AttemptResult.failed
                )
            if outcome.state == QuestState.passed and outcome.xp_earned > 0:
                db.add(XpLedger(
                    user_id=user_id,
                    source=XpSource.quest,
                    amount=outcome.xp_earned,
                    quest_id=outcome.quest_id,
                ))

        ok = True
        if result.xp_gained > 0:
            ok = _write_level(db, user_id, level_row, result)
        if ok and result.streak != streak:
            ok = _write_streak(db, user_id, streak_row, result.streak)
        if not ok:
            db.rollback()
            logger.warning("Version conflict user=%s day=%s", user_id, day)
            raise ConcurrentEvaluationError(user_id, day)

        try:
            db.commit()
        except IntegrityError:
            # another writer created level_state / streak / ledger rows first
            db.rollback()
            logger.warning("Integrity conflict user=%s day=%s", user_id, day)
            raise ConcurrentEvaluationError(user_id, day)

    return result


# ---------------------------------------------------------------------------
# Public — status window
# ---------------------------------------------------------------------------

def get_status_window(db: Session, user_id: str) -> StatusWindow:
    level_row = _get_level_row(db, user_id)
    streak_row = _get_streak_row(db, user_id)
    level = level_row.level if level_row else 1
    return StatusWindow(
        user_id=user_id,
        level=level,
        xp=level_row.xp if level_row else 0,
        xp_to_next_level=xp_required_for_level(level),
        streak=streak_row.current if streak_row else 0,
        best_streak=streak_row.best if streak_row else 0,
    )


# ---------------------------------------------------------------------------
# Public — quests and attempts
# ---------------------------------------------------------------------------

def create_quest(
    db: Session,
    user_id: str,
    title: str,
    target_value: float,
    scheduled_for: date,
    metric_key: str = "manual",
    description: Optional[str] = None,
) -> Quest:
    quest = Quest(
        user_id=user_id,
        title=title,
        description=description,
        target_value=target_value,
        metric_key=metric_key,
        scheduled_for=scheduled_for,
        state=QuestState.assigned,
        xp_awarded=0,
    )
    db.add(quest)
    db.commit()
    db.refresh(quest)
    return quest


def list_quests(db: Session, user_id: str, day: Optional[date] = None) -> list[Quest]:
    q = db.query(Quest).filter(Quest.user_id == user_id)
    if day is not None:
        q = q.filter(Quest.scheduled_for == day)
    return q.order_by(Quest.scheduled_for.desc(), Quest.id).all()


def get_quest(db: Session, user_id: str, quest_id: int) -> Quest:
    quest = (
        db.query(Quest)
        .filter(Quest.id == quest_id, Quest.user_id == user_id)
        .first()
    )
    if quest is None:
        raise QuestNotFoundError(quest_id)
    return quest


def record_attempt(
    db: Session,
    user_id: str,
    quest_id: int,
    observed_value: float,
    verified: bool = False,
    source: str = "manual",
    attempted_at: Optional[datetime] = None,
) -> QuestAttempt:
    """Store an observation. Attempts on evaluated quests are kept but never re-scored."""
    quest = get_quest(db, user_id, quest_id)
    attempt = QuestAttempt(
        quest_id=quest.id,
        user_id=user_id,
        observed_value=observed_value,
        verified=verified,
        source=source,
        attempted_at=attempted_at or _utcnow(),
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    logger.debug("Recorded attempt quest=%s value=%s verified=%s", quest_id, observed_value, verified)
    return attempt
