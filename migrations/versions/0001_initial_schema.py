"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Quests, attempts and per-user progression state.
Idempotency lives in the constraints:
  level_state.user_id              one row per user
  streaks (user_id, streak_key)    one row per user and streak
  xp_ledger.quest_id               a quest pays out at most once
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    quest_state_enum = sa.Enum("assigned", "passed", "failed", name="quest_state_enum")
    quest_state_enum.create(op.get_bind(), checkfirst=True)

    attempt_result_enum = sa.Enum("passed", "failed", name="attempt_result_enum")
    attempt_result_enum.create(op.get_bind(), checkfirst=True)

    xp_source_enum = sa.Enum("quest", "bonus", "manual", name="xp_source_enum")
    xp_source_enum.create(op.get_bind(), checkfirst=True)

    # --- quests ---
    op.create_table(
        "quests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target_value", sa.Float(), nullable=False),
        sa.Column("metric_key", sa.String(64), nullable=False, server_default="manual"),
        sa.Column("scheduled_for", sa.Date(), nullable=False),
        sa.Column("state", sa.Enum(
            "assigned", "passed", "failed", name="quest_state_enum", create_type=False,
        ), nullable=False, server_default="assigned"),
        sa.Column("xp_awarded", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("evaluated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quests_id", "quests", ["id"])
    op.create_index("ix_quests_user_id", "quests", ["user_id"])
    op.create_index("ix_quests_scheduled_for", "quests", ["scheduled_for"])

    # --- quest_attempts ---
    op.create_table(
        "quest_attempts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("quest_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("source", sa.String(32), nullable=False, server_default="manual"),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("observed_value", sa.Float(), nullable=False),
        sa.Column("result", sa.Enum(
            "passed", "failed", name="attempt_result_enum", create_type=False,
        ), nullable=True),
        sa.Column("attempted_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["quest_id"], ["quests.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quest_attempts_id", "quest_attempts", ["id"])
    op.create_index("ix_quest_attempts_quest_id", "quest_attempts", ["quest_id"])
    op.create_index("ix_quest_attempts_user_id", "quest_attempts", ["user_id"])
    op.create_index("ix_quest_attempts_attempted_at", "quest_attempts", ["attempted_at"])

    # --- level_state ---
    op.create_table(
        "level_state",
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("xp", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )

    # --- streaks ---
    op.create_table(
        "streaks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("streak_key", sa.String(64), nullable=False),
        sa.Column("current", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("best", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "last_period", sa.Date(), nullable=True,
            comment="Last evaluation day applied to this streak",
        ),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "streak_key", name="uq_streak_user_key"),
    )
    op.create_index("ix_streaks_id", "streaks", ["id"])
    op.create_index("ix_streaks_user_id", "streaks", ["user_id"])

    # --- xp_ledger ---
    op.create_table(
        "xp_ledger",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("source", sa.Enum(
            "quest", "bonus", "manual", name="xp_source_enum", create_type=False,
        ), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("quest_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("quest_id"),
    )
    op.create_index("ix_xp_ledger_id", "xp_ledger", ["id"])
    op.create_index("ix_xp_ledger_user_id", "xp_ledger", ["user_id"])


def downgrade() -> None:
    op.drop_table("xp_ledger")
    op.drop_table("streaks")
    op.drop_table("level_state")
    op.drop_table("quest_attempts")
    op.drop_table("quests")

    op.execute("DROP TYPE IF EXISTS xp_source_enum")
    op.execute("DROP TYPE IF EXISTS attempt_result_enum")
    op.execute("DROP TYPE IF EXISTS quest_state_enum")
