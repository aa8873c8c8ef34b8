"""
Assessment service — honest-ranking sessions and history.

Sessions
--------
A multi-step assessment is a row in assessment_sessions:

  start_session    goal text -> category (classifier or explicit), questions
  get_session      404 if unknown/foreign, 410 once expires_at has passed
  submit_answers   merge answers, rank them, store the HonestAssessment,
                   stage -> "complete"
  expire_session   delete the row

Nothing lives in process memory, so any worker can serve any step.

History
-------
Every ranking computed through the API is stored in honest_assessments
with its inputs and per-metric breakdown; latest_assessment() reads it back.
"""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import SessionExpiredError, SessionNotFoundError
from app.models.assessment import AssessmentSession, HonestAssessmentRecord
from app.services.benchmarks import get_category
from app.services.classifier import classify_goal
from app.services.ranking import HonestAssessment, assess_metrics

logger = logging.getLogger(__name__)


class SessionStage:
    QUESTIONS = "questions"
    COMPLETE  = "complete"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is written in UTC.
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def decode_json(raw: Optional[str], default: Any) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (ValueError, TypeError):
        return default


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

def record_assessment(
    db: Session,
    user_id: str,
    assessment: HonestAssessment,
    values: Mapping[str, Any],
    goal_text: Optional[str] = None,
) -> HonestAssessmentRecord:
    """Add a history row. The caller commits."""
    record = HonestAssessmentRecord(
        user_id=user_id,
        category_id=assessment.category_id,
        goal_text=goal_text,
        rank=assessment.rank,
        percentile=assessment.percentile,
        metric_values=json.dumps(dict(values)),
        breakdown=json.dumps([asdict(m) for m in assessment.metrics]),
    )
    db.add(record)
    db.flush()
    return record


def assess_and_record(
    db: Session,
    user_id: str,
    category_id: str,
    values: Mapping[str, Any],
    goal_text: Optional[str] = None,
) -> tuple[HonestAssessment, HonestAssessmentRecord]:
    assessment = assess_metrics(category_id, values)
    record = record_assessment(db, user_id, assessment, values, goal_text)
    db.commit()
    db.refresh(record)
    logger.info(
        "Assessed user=%s category=%s rank=%s percentile=%s",
        user_id, assessment.category_id, assessment.rank, assessment.percentile,
    )
    return assessment, record


def latest_assessment(
    db: Session, user_id: str, category_id: Optional[str] = None
) -> Optional[HonestAssessmentRecord]:
    q = db.query(HonestAssessmentRecord).filter(HonestAssessmentRecord.user_id == user_id)
    if category_id:
        q = q.filter(HonestAssessmentRecord.category_id == category_id)
    return (
        q.order_by(HonestAssessmentRecord.assessed_at.desc(), HonestAssessmentRecord.id.desc())
        .first()
    )


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

def start_session(
    db: Session,
    user_id: str,
    goal_text: str,
    category_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AssessmentSession:
    """Open a session. An explicit category overrides the classifier."""
    now = now or _utcnow()
    category = get_category(category_id or classify_goal(goal_text))
    purged = purge_expired_sessions(db, now)
    if purged:
        logger.debug("Purged %d expired assessment sessions", purged)
    session = AssessmentSession(
        id=uuid.uuid4().hex,
        user_id=user_id,
        goal_text=goal_text,
        category_id=category.id,
        answers="{}",
        stage=SessionStage.QUESTIONS,
        created_at=now,
        expires_at=now + timedelta(minutes=settings.ASSESSMENT_SESSION_TTL_MINUTES),
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.debug("Started assessment session %s category=%s", session.id, category.id)
    return session


def get_session(
    db: Session, user_id: str, session_id: str, now: Optional[datetime] = None
) -> AssessmentSession:
    session = (
        db.query(AssessmentSession)
        .filter(AssessmentSession.id == session_id, AssessmentSession.user_id == user_id)
        .first()
    )
    if session is None:
        raise SessionNotFoundError(session_id)
    if _aware(session.expires_at) <= (now or _utcnow()):
        raise SessionExpiredError(session_id)
    return session


def submit_answers(
    db: Session,
    user_id: str,
    session_id: str,
    answers: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> tuple[AssessmentSession, HonestAssessment, HonestAssessmentRecord]:
    """
    Merge `answers` into the session and rank the combined set.

    Answering a completed session again re-ranks and stores a new history
    row; earlier answers are kept unless overwritten.
    """
    session = get_session(db, user_id, session_id, now=now)
    merged = {**decode_json(session.answers, {}), **dict(answers)}

    assessment = assess_metrics(session.category_id, merged)
    record = record_assessment(db, user_id, assessment, merged, session.goal_text)

    session.answers = json.dumps(merged)
    session.stage = SessionStage.COMPLETE
    session.assessment_id = record.id
    db.commit()
    db.refresh(session)
    db.refresh(record)
    logger.info(
        "Completed session %s user=%s rank=%s", session.id, user_id, assessment.rank
    )
    return session, assessment, record


def expire_session(db: Session, user_id: str, session_id: str) -> None:
    session = (
        db.query(AssessmentSession)
        .filter(AssessmentSession.id == session_id, AssessmentSession.user_id == user_id)
        .first()
    )
    if session is None:
        raise SessionNotFoundError(session_id)
    db.delete(session)
    db.commit()


def purge_expired_sessions(db: Session, now: Optional[datetime] = None) -> int:
    """Delete every session past its expiry. The caller commits."""
    return (
        db.query(AssessmentSession)
        .filter(AssessmentSession.expires_at <= (now or _utcnow()))
        .delete(synchronize_session=False)
    )
