"""In-memory TranscriptStore used by the engine, pipeline and server tests.

Mirrors the contract of ``SqlTranscriptStore``: a per-session lock makes
the length check and the append one atomic step, the first completion
written wins, and contact details replace each other.
"""

import asyncio
from collections import defaultdict
from datetime import datetime, timezone

from intake_engine.errors import NotFoundError, SequenceConflict
from intake_engine.interfaces import TranscriptStore
from intake_engine.models.session import (
    CompletionOutput,
    ContactInfo,
    ProgressEntry,
    SessionRecord,
    SessionStats,
)


class InMemoryTranscriptStore(TranscriptStore):
    """Dict-backed store; every collection is keyed by session id."""

    def __init__(self):
        self.sessions: dict[str, SessionRecord] = {}
        self.progress: dict[str, list[ProgressEntry]] = defaultdict(list)
        self.completions: dict[str, CompletionOutput] = {}
        self.contacts: dict[str, ContactInfo] = {}
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        # Counters so tests can assert how often the store was written
        self.append_calls = 0
        self.completion_writes = 0

    async def create_session(self, record):
        existing = self.sessions.get(record.session_id)
        if existing is not None:
            return existing
        self.sessions[record.session_id] = record
        return record

    async def read_session(self, session_id):
        return self.sessions.get(session_id)

    async def append_progress(self, session_id, expected_index, entry):
        self.append_calls += 1
        async with self._locks[session_id]:
            if session_id not in self.sessions:
                raise NotFoundError(f"Session not found: {session_id}")
            log = self.progress[session_id]
            if len(log) != expected_index:
                raise SequenceConflict(session_id, expected_index, len(log))
            # Yield while holding the lock so racing writers really contend
            await asyncio.sleep(0)
            log.append(entry)

    async def read_progress(self, session_id):
        return list(self.progress.get(session_id, []))

    async def write_completion(self, session_id, completion):
        self.completion_writes += 1
        if session_id not in self.completions:
            self.completions[session_id] = completion
            record = self.sessions[session_id]
            self.sessions[session_id] = record.model_copy(
                update={"completed_at": datetime.now(timezone.utc)}
            )

    async def read_completion(self, session_id):
        return self.completions.get(session_id)

    async def write_contact(self, session_id, contact):
        if session_id not in self.sessions:
            raise NotFoundError(f"Session not found: {session_id}")
        self.contacts[session_id] = contact

    async def read_contact(self, session_id):
        return self.contacts.get(session_id)

    async def list_sessions(self, limit=50, offset=0, intake_type=None):
        rows = [
            s for s in self.sessions.values()
            if intake_type is None or s.intake_type == intake_type
        ]
        rows.sort(key=lambda s: s.created_at, reverse=True)
        return rows[offset:offset + limit], len(rows)

    async def session_stats(self, intake_type=None):
        ids = [
            sid for sid, s in self.sessions.items()
            if intake_type is None or s.intake_type == intake_type
        ]
        completed = sum(1 for sid in ids if sid in self.completions)
        return SessionStats(total=len(ids), completed=completed, in_progress=len(ids) - completed)
