"""Intake session ORM models.

Two tables:

    intake_sessions          one row per session; the completion and contact
                             records are JSONB columns on the same row
    intake_progress_entries  the append-only transcript, one row per answer

``(session_id, position)`` is unique, so a second append at the same
position fails at the database even if two writers slip past the
row lock.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Index,
    SmallInteger,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from intake_db.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IntakeSession(Base):
    """One row per intake session, keyed by the caller's opaque session id."""

    __tablename__ = "intake_sessions"

    session_id: Mapped[str] = mapped_column(Text, primary_key=True)
    # Registry key of the intake being answered (e.g. "therapy_readiness")
    intake_type: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    # --- End-of-intake records ---
    # Shape: {"personalized_brief": ..., "first_session_guide": ..., "experiments": [...]}
    completion: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    # Shape: {"email": ..., "phone": ..., "timestamp": "ISO8601"}
    contact: Mapped[dict | None] = mapped_column(JSONB, nullable=True)

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True,
    )

    entries: Mapped[list["IntakeProgressEntry"]] = relationship(
        back_populates="session",
        order_by="IntakeProgressEntry.position",
        cascade="all, delete-orphan",
        lazy="raise",
    )

    __table_args__ = (
        CheckConstraint(
            "completed_at IS NULL OR completion IS NOT NULL",
            name="ck_completed_has_completion",
        ),
        Index("ix_intake_sessions_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<IntakeSession(session={self.session_id!r}, "
            f"intake={self.intake_type!r}, completed={self.completed_at is not None})>"
        )


class IntakeProgressEntry(Base):
    """One answered question.  Rows are only ever inserted."""

    __tablename__ = "intake_progress_entries"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("intake_sessions.session_id", ondelete="CASCADE"),
        nullable=False,
    )
    # 0-based step index; equals the number of entries before this one
    position: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    question_id: Mapped[str] = mapped_column(Text, nullable=False)
    question_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    # String for free_text / single_select, list of option values for multi_select
    answer: Mapped[Any] = mapped_column(JSONB, nullable=False)
    escape_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    reflection: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=text("''"),
    )
    answered_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=_utcnow,
    )

    session: Mapped[IntakeSession] = relationship(back_populates="entries")

    __table_args__ = (
        UniqueConstraint("session_id", "position", name="uq_session_position"),
        CheckConstraint("position >= 0", name="ck_position_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<IntakeProgressEntry(session={self.session_id!r}, "
            f"position={self.position}, qid={self.question_id!r})>"
        )
