"""
Per-user progression state: level/XP, streaks, and the XP ledger.

level_state and streaks carry a `version` column. The progression service
bumps it on every write and only writes when the version it read is still
current, so two evaluators racing across processes cannot both win.

xp_ledger is append-only. quest_id is unique, so a quest can be paid out
at most once even if evaluation is retried.
"""
from datetime import datetime, date
from sqlalchemy import (
    Integer, BigInteger, String, DateTime, Date, Enum, UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.db.base import Base


class XpSource(str, enum.Enum):
    quest = "quest"
    bonus = "bonus"
    manual = "manual"


class LevelState(Base):
    __tablename__ = "level_state"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    xp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class Streak(Base):
    __tablename__ = "streaks"
    __table_args__ = (
        UniqueConstraint("user_id", "streak_key", name="uq_streak_user_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    streak_key: Mapped[str] = mapped_column(String(64), nullable=False)
    current: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    best: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_period: Mapped[date | None] = mapped_column(
        Date, nullable=True,
        comment="Last evaluation day applied to this streak",
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class XpLedger(Base):
    __tablename__ = "xp_ledger"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    source: Mapped[str] = mapped_column(
        Enum(XpSource, name="xp_source_enum"), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    quest_id: Mapped[int | None] = mapped_column(Integer, nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
