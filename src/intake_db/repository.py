"""Async CRUD repository for intake sessions and their progress entries.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries.  ``SqlTranscriptStore`` opens one transaction per
store call and composes these methods inside it.

The repository avoids business-logic validation; that belongs in the
engine.  Structural invariants (one entry per position, a completed
session carries its completion) are enforced by DB constraints.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from intake_db.models.session import IntakeProgressEntry, IntakeSession


class IntakeRepository:
    """Async read/write operations on the intake tables."""

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(
        self,
        db: AsyncSession,
        *,
        session_id: str,
        intake_type: str,
        created_at: datetime | None = None,
    ) -> IntakeSession:
        """Insert a session row unless the key already exists; return the row."""
        now = created_at or datetime.now(timezone.utc)
        stmt = (
            insert(IntakeSession)
            .values(
                session_id=session_id,
                intake_type=intake_type,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=[IntakeSession.session_id])
        )
        await db.execute(stmt)
        return await self.get_session(db, session_id)

    async def get_session(
        self,
        db: AsyncSession,
        session_id: str,
        *,
        for_update: bool = False,
    ) -> IntakeSession | None:
        """Fetch a session row.

        With ``for_update`` the row stays locked until the transaction
        ends, serialising appends for this session only.
        """
        stmt = select(IntakeSession).where(IntakeSession.session_id == session_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_sessions(
        self,
        db: AsyncSession,
        *,
        limit: int = 50,
        offset: int = 0,
        intake_type: str | None = None,
    ) -> tuple[list[IntakeSession], int]:
        """List sessions most recent first, with the unpaginated total."""
        stmt = select(IntakeSession)
        count_stmt = select(func.count()).select_from(IntakeSession)
        if intake_type is not None:
            stmt = stmt.where(IntakeSession.intake_type == intake_type)
            count_stmt = count_stmt.where(IntakeSession.intake_type == intake_type)

        stmt = stmt.order_by(IntakeSession.created_at.desc()).limit(limit).offset(offset)
        rows = list((await db.execute(stmt)).scalars().all())
        total = (await db.execute(count_stmt)).scalar_one()
        return rows, total

    async def count_sessions(
        self,
        db: AsyncSession,
        *,
        intake_type: str | None = None,
    ) -> tuple[int, int]:
        """Return ``(total, completed)`` in one query."""
        stmt = select(
            func.count(),
            func.count().filter(IntakeSession.completed_at.is_not(None)),
        ).select_from(IntakeSession)
        if intake_type is not None:
            stmt = stmt.where(IntakeSession.intake_type == intake_type)
        total, completed = (await db.execute(stmt)).one()
        return total, completed

    # ------------------------------------------------------------------
    # Progress entries
    # ------------------------------------------------------------------

    async def count_entries(self, db: AsyncSession, session_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(IntakeProgressEntry)
            .where(IntakeProgressEntry.session_id == session_id)
        )
        return (await db.execute(stmt)).scalar_one()

    async def add_entry(
        self,
        db: AsyncSession,
        *,
        session_id: str,
        position: int,
        question_id: str,
        question_prompt: str,
        answer: Any,
        escape_text: str | None,
        reflection: str,
        answered_at: datetime,
    ) -> IntakeProgressEntry:
        """Insert one progress entry.

        The caller must hold the session row lock and have checked the
        position; ``uq_session_position`` is the last line of defence.
        """
        entry = IntakeProgressEntry(
            session_id=session_id,
            position=position,
            question_id=question_id,
            question_prompt=question_prompt,
            answer=answer,
            escape_text=escape_text,
            reflection=reflection,
            answered_at=answered_at,
        )
        db.add(entry)
        await db.execute(
            update(IntakeSession)
            .where(IntakeSession.session_id == session_id)
            .values(updated_at=datetime.now(timezone.utc))
        )
        await db.flush()
        return entry

    async def list_entries(
        self, db: AsyncSession, session_id: str
    ) -> list[IntakeProgressEntry]:
        """Return a session's entries in position order."""
        stmt = (
            select(IntakeProgressEntry)
            .where(IntakeProgressEntry.session_id == session_id)
            .order_by(IntakeProgressEntry.position)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # End-of-intake records
    # ------------------------------------------------------------------

    async def save_completion(
        self,
        db: AsyncSession,
        session_id: str,
        completion: dict[str, Any],
    ) -> bool:
        """Store the completion unless one exists.  Returns True if written."""
        now = datetime.now(timezone.utc)
        stmt = (
            update(IntakeSession)
            .where(
                IntakeSession.session_id == session_id,
                IntakeSession.completion.is_(None),
            )
            .values(completion=completion, completed_at=now, updated_at=now)
        )
        result = await db.execute(stmt)
        return result.rowcount > 0

    async def save_contact(
        self,
        db: AsyncSession,
        session_id: str,
        contact: dict[str, Any],
    ) -> bool:
        """Store (or replace) the contact record.  Returns True if the session exists."""
        stmt = (
            update(IntakeSession)
            .where(IntakeSession.session_id == session_id)
            .values(contact=contact, updated_at=datetime.now(timezone.utc))
        )
        result = await db.execute(stmt)
        return result.rowcount > 0
