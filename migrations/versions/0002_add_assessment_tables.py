"""add honest_assessments and assessment_sessions tables

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

honest_assessments is append-only history of ranking runs.
assessment_sessions holds multi-step assessments until expires_at.
JSON payloads are stored as Text.
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "honest_assessments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("category_id", sa.String(64), nullable=False),
        sa.Column("goal_text", sa.Text(), nullable=True),
        sa.Column("rank", sa.String(1), nullable=False),
        sa.Column("percentile", sa.Float(), nullable=False),
        sa.Column(
            "metric_values", sa.Text(), nullable=False,
            comment="JSON-encoded metric id -> value",
        ),
        sa.Column(
            "breakdown", sa.Text(), nullable=False,
            comment="JSON-encoded per-metric assessment",
        ),
        sa.Column(
            "assessed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_honest_assessments_id", "honest_assessments", ["id"])
    op.create_index("ix_honest_assessments_user_id", "honest_assessments", ["user_id"])
    op.create_index("ix_honest_assessments_assessed_at", "honest_assessments", ["assessed_at"])

    op.create_table(
        "assessment_sessions",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("goal_text", sa.Text(), nullable=False),
        sa.Column("category_id", sa.String(64), nullable=False),
        sa.Column("answers", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("stage", sa.String(16), nullable=False, server_default="questions"),
        sa.Column("assessment_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_assessment_sessions_user_id", "assessment_sessions", ["user_id"])
    op.create_index("ix_assessment_sessions_expires_at", "assessment_sessions", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_assessment_sessions_expires_at", table_name="assessment_sessions")
    op.drop_index("ix_assessment_sessions_user_id", table_name="assessment_sessions")
    op.drop_table("assessment_sessions")
    op.drop_index("ix_honest_assessments_assessed_at", table_name="honest_assessments")
    op.drop_index("ix_honest_assessments_user_id", table_name="honest_assessments")
    op.drop_index("ix_honest_assessments_id", table_name="honest_assessments")
    op.drop_table("honest_assessments")
