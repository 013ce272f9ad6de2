"""SqlTranscriptStore — PostgreSQL implementation of ``TranscriptStore``.

Each store call runs in its own transaction obtained from an
``async_sessionmaker``.  ``append_progress`` locks the session row
(``SELECT ... FOR UPDATE``), compares the entry count with the expected
index, and inserts; concurrent appends to *other* sessions never wait.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from intake_engine.errors import NotFoundError, SequenceConflict
from intake_engine.interfaces import TranscriptStore
from intake_engine.models.session import (
    CompletionOutput,
    ContactInfo,
    ProgressEntry,
    SessionRecord,
    SessionStats,
)

from intake_db.models.session import IntakeProgressEntry, IntakeSession
from intake_db.repository import IntakeRepository

logger = logging.getLogger(__name__)


class SqlTranscriptStore(TranscriptStore):
    """Transcript persistence on the ``intake_sessions`` tables.

    Args:
        session_factory: typically ``intake_db.get_session_factory()``
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._repo = IntakeRepository()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(self, record: SessionRecord) -> SessionRecord:
        async with self._session_factory() as db, db.begin():
            row = await self._repo.create_session(
                db,
                session_id=record.session_id,
                intake_type=record.intake_type,
                created_at=record.created_at,
            )
            return _to_record(row)

    async def read_session(self, session_id: str) -> Optional[SessionRecord]:
        async with self._session_factory() as db:
            row = await self._repo.get_session(db, session_id)
            return _to_record(row) if row is not None else None

    async def list_sessions(
        self,
        limit: int = 50,
        offset: int = 0,
        intake_type: Optional[str] = None,
    ) -> tuple[list[SessionRecord], int]:
        async with self._session_factory() as db:
            rows, total = await self._repo.list_sessions(
                db, limit=limit, offset=offset, intake_type=intake_type,
            )
            return [_to_record(r) for r in rows], total

    async def session_stats(self, intake_type: Optional[str] = None) -> SessionStats:
        async with self._session_factory() as db:
            total, completed = await self._repo.count_sessions(db, intake_type=intake_type)
        return SessionStats(total=total, completed=completed, in_progress=total - completed)

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    async def append_progress(
        self,
        session_id: str,
        expected_index: int,
        entry: ProgressEntry,
    ) -> None:
        try:
            async with self._session_factory() as db, db.begin():
                row = await self._repo.get_session(db, session_id, for_update=True)
                if row is None:
                    raise NotFoundError(f"Session not found: {session_id}")

                count = await self._repo.count_entries(db, session_id)
                if count != expected_index:
                    raise SequenceConflict(session_id, expected_index, count)

                await self._repo.add_entry(
                    db,
                    session_id=session_id,
                    position=expected_index,
                    question_id=entry.question_id,
                    question_prompt=entry.question_prompt,
                    answer=entry.answer,
                    escape_text=entry.escape_text,
                    reflection=entry.reflection,
                    answered_at=entry.timestamp,
                )
        except IntegrityError as exc:
            # uq_session_position fired: another writer took this position
            raise SequenceConflict(session_id, expected_index, expected_index + 1) from exc

    async def read_progress(self, session_id: str) -> list[ProgressEntry]:
        async with self._session_factory() as db:
            rows = await self._repo.list_entries(db, session_id)
            return [_to_entry(r) for r in rows]

    # ------------------------------------------------------------------
    # Completion & contact
    # ------------------------------------------------------------------

    async def write_completion(self, session_id: str, completion: CompletionOutput) -> None:
        async with self._session_factory() as db, db.begin():
            written = await self._repo.save_completion(
                db, session_id, completion.model_dump(mode="json"),
            )
        if not written:
            logger.info("Completion for %s already stored; keeping the first", session_id)

    async def read_completion(self, session_id: str) -> Optional[CompletionOutput]:
        async with self._session_factory() as db:
            row = await self._repo.get_session(db, session_id)
            if row is None or row.completion is None:
                return None
            return CompletionOutput.model_validate(row.completion)

    async def write_contact(self, session_id: str, contact: ContactInfo) -> None:
        async with self._session_factory() as db, db.begin():
            found = await self._repo.save_contact(
                db, session_id, contact.model_dump(mode="json"),
            )
        if not found:
            raise NotFoundError(f"Session not found: {session_id}")

    async def read_contact(self, session_id: str) -> Optional[ContactInfo]:
        async with self._session_factory() as db:
            row = await self._repo.get_session(db, session_id)
            if row is None or row.contact is None:
                return None
            return ContactInfo.model_validate(row.contact)


# ----------------------------------------------------------------------
# Row → model conversion
# ----------------------------------------------------------------------

def _to_record(row: IntakeSession) -> SessionRecord:
    return SessionRecord(
        session_id=row.session_id,
        intake_type=row.intake_type,
        created_at=row.created_at,
        completed_at=row.completed_at,
    )


def _to_entry(row: IntakeProgressEntry) -> ProgressEntry:
    return ProgressEntry(
        question_id=row.question_id,
        question_prompt=row.question_prompt,
        answer=row.answer,
        escape_text=row.escape_text,
        reflection=row.reflection,
        timestamp=row.answered_at,
    )
