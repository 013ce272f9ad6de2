"""Create intake_sessions and intake_progress_entries.

Revision ID: 20261019_intake
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP

# revision identifiers, used by Alembic.
revision = "20261019_intake"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- Sessions ---
    op.create_table(
        "intake_sessions",
        sa.Column("session_id", sa.Text, primary_key=True),
        sa.Column("intake_type", sa.Text, nullable=False),
        # End-of-intake records
        sa.Column("completion", JSONB, nullable=True),
        sa.Column("contact", JSONB, nullable=True),
        # Timestamps
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("completed_at", TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint(
            "completed_at IS NULL OR completion IS NOT NULL",
            name="ck_completed_has_completion",
        ),
    )
    op.create_index("ix_intake_sessions_intake_type", "intake_sessions", ["intake_type"])
    op.create_index("ix_intake_sessions_created_at", "intake_sessions", ["created_at"])

    # --- Append-only transcript ---
    op.create_table(
        "intake_progress_entries",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "session_id",
            sa.Text,
            sa.ForeignKey("intake_sessions.session_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.SmallInteger, nullable=False),
        sa.Column("question_id", sa.Text, nullable=False),
        sa.Column("question_prompt", sa.Text, nullable=False),
        sa.Column("answer", JSONB, nullable=False),
        sa.Column("escape_text", sa.Text, nullable=True),
        sa.Column("reflection", sa.Text, nullable=False, server_default=sa.text("''")),
        sa.Column("answered_at", TIMESTAMP(timezone=True), nullable=False),
        sa.UniqueConstraint("session_id", "position", name="uq_session_position"),
        sa.CheckConstraint("position >= 0", name="ck_position_non_negative"),
    )


def downgrade() -> None:
    op.drop_table("intake_progress_entries")
    op.drop_index("ix_intake_sessions_created_at", table_name="intake_sessions")
    op.drop_index("ix_intake_sessions_intake_type", table_name="intake_sessions")
    op.drop_table("intake_sessions")
