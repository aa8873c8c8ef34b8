"""
Honest-ranking persistence.

HonestAssessmentRecord — history of computed assessments, one row per run.
AssessmentSession      — multi-step assessment flow keyed by an opaque id.
                         Lifetime is explicit: created, read, answered,
                         and dead once `expires_at` passes.

JSON payloads are stored as Text (json.dumps), same as the other tables.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, Float, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class HonestAssessmentRecord(Base):
    __tablename__ = "honest_assessments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    category_id: Mapped[str] = mapped_column(String(64), nullable=False)
    goal_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    rank: Mapped[str] = mapped_column(String(1), nullable=False)
    percentile: Mapped[float] = mapped_column(Float, nullable=False)
    metric_values: Mapped[str] = mapped_column(
        Text, nullable=False, comment="JSON-encoded metric id -> value"
    )
    breakdown: Mapped[str] = mapped_column(
        Text, nullable=False, comment="JSON-encoded per-metric assessment"
    )
    assessed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )


class AssessmentSession(Base):
    __tablename__ = "assessment_sessions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    goal_text: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[str] = mapped_column(String(64), nullable=False)
    answers: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    # "questions" | "complete"
    stage: Mapped[str] = mapped_column(String(16), nullable=False, default="questions")
    assessment_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
