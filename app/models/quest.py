from datetime import datetime, date
from sqlalchemy import (
    Integer, String, Text, Float, Boolean, DateTime, Date, Enum, ForeignKey, func,
)
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.db.base import Base


class QuestState(str, enum.Enum):
    assigned = "assigned"
    passed = "passed"
    failed = "failed"


class AttemptResult(str, enum.Enum):
    passed = "passed"
    failed = "failed"


class Quest(Base):
    """A scheduled unit of work for one user on one calendar day."""

    __tablename__ = "quests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_value: Mapped[float] = mapped_column(Float, nullable=False)
    metric_key: Mapped[str] = mapped_column(String(64), nullable=False, default="manual")
    scheduled_for: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    state: Mapped[str] = mapped_column(
        Enum(QuestState, name="quest_state_enum"),
        nullable=False,
        default=QuestState.assigned,
    )
    xp_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    evaluated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class QuestAttempt(Base):
    """One reported observation toward a quest's target."""

    __tablename__ = "quest_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    quest_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("quests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # "health_connect", "manual", ...
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="manual")
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    observed_value: Mapped[float] = mapped_column(Float, nullable=False)
    result: Mapped[str | None] = mapped_column(
        Enum(AttemptResult, name="attempt_result_enum"), nullable=True
    )
    attempted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
