"""SqlTranscriptStore tests with the database layer mocked out.

``MockRepository`` keeps session and entry rows in dicts and implements
the ``IntakeRepository`` methods the store calls; ``FakeSession`` stands in
for ``AsyncSession`` so the store's ``async with factory() as db,
db.begin()`` blocks run without a connection.  The locking itself is
PostgreSQL's job; these tests cover the store's checks and error mapping.
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from intake_db.store import SqlTranscriptStore
from intake_engine.errors import NotFoundError, SequenceConflict, SequenceError
from intake_engine.models.session import (
    CompletionOutput,
    ContactInfo,
    ProgressEntry,
    SessionRecord,
)


# =====================================================================
# Mock infrastructure
# =====================================================================


class FakeSession:
    """Async context manager that is its own transaction."""

    def __init__(self):
        self.rolled_back = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.rolled_back = True
        return False

    def begin(self):
        return self


class MockRepository:
    """In-memory stand-in for ``IntakeRepository``."""

    def __init__(self):
        self.sessions: dict[str, SimpleNamespace] = {}
        self.entries: dict[str, list[SimpleNamespace]] = {}
        self.fail_next_insert = False
        self.locked: list[str] = []

    async def create_session(self, db, *, session_id, intake_type, created_at=None):
        if session_id not in self.sessions:
            self.sessions[session_id] = SimpleNamespace(
                session_id=session_id,
                intake_type=intake_type,
                created_at=created_at or datetime.now(timezone.utc),
                completed_at=None,
                completion=None,
                contact=None,
            )
            self.entries[session_id] = []
        return self.sessions[session_id]

    async def get_session(self, db, session_id, *, for_update=False):
        if for_update:
            self.locked.append(session_id)
        return self.sessions.get(session_id)

    async def list_sessions(self, db, *, limit=50, offset=0, intake_type=None):
        rows = [r for r in self.sessions.values()
                if intake_type is None or r.intake_type == intake_type]
        return rows[offset:offset + limit], len(rows)

    async def count_sessions(self, db, *, intake_type=None):
        rows = [r for r in self.sessions.values()
                if intake_type is None or r.intake_type == intake_type]
        return len(rows), sum(1 for r in rows if r.completed_at is not None)

    async def count_entries(self, db, session_id):
        return len(self.entries.get(session_id, []))

    async def add_entry(self, db, *, session_id, position, **fields):
        if self.fail_next_insert:
            self.fail_next_insert = False
            raise IntegrityError("INSERT", {}, Exception("uq_session_position"))
        row = SimpleNamespace(session_id=session_id, position=position, **fields)
        self.entries[session_id].append(row)
        return row

    async def list_entries(self, db, session_id):
        return list(self.entries.get(session_id, []))

    async def save_completion(self, db, session_id, completion):
        row = self.sessions.get(session_id)
        if row is None or row.completion is not None:
            return False
        row.completion = completion
        row.completed_at = datetime.now(timezone.utc)
        return True

    async def save_contact(self, db, session_id, contact):
        row = self.sessions.get(session_id)
        if row is None:
            return False
        row.contact = contact
        return True


@pytest.fixture
def repo():
    return MockRepository()


@pytest.fixture
def sql_store(repo):
    s = SqlTranscriptStore(FakeSession)
    s._repo = repo
    return s


def _entry(question_id="q1_feelings", answer="I feel anxious"):
    return ProgressEntry(
        question_id=question_id,
        question_prompt="How have you been feeling lately?",
        answer=answer,
        reflection="That sounds heavy.",
    )


async def _open(sql_store, session_id="s1"):
    await sql_store.create_session(SessionRecord(session_id=session_id, intake_type="scenario"))
    return session_id


# =====================================================================
# Tests
# =====================================================================


class TestAppend:

    @pytest.mark.asyncio
    async def test_append_and_read_back(self, sql_store, repo):
        sid = await _open(sql_store)
        await sql_store.append_progress(sid, 0, _entry())
        await sql_store.append_progress(sid, 1, _entry("q2_areas", ["work", "other"]))

        progress = await sql_store.read_progress(sid)
        assert [e.question_id for e in progress] == ["q1_feelings", "q2_areas"]
        assert progress[1].answer == ["work", "other"]
        assert [r.position for r in repo.entries[sid]] == [0, 1]
        assert repo.locked == [sid, sid], "Every append locks the session row"

    @pytest.mark.asyncio
    async def test_stale_index_conflicts(self, sql_store):
        sid = await _open(sql_store)
        await sql_store.append_progress(sid, 0, _entry())
        with pytest.raises(SequenceConflict) as exc_info:
            await sql_store.append_progress(sid, 0, _entry())
        assert exc_info.value.actual_length == 1
        assert isinstance(exc_info.value, SequenceError)

    @pytest.mark.asyncio
    async def test_unique_violation_becomes_conflict(self, sql_store, repo):
        sid = await _open(sql_store)
        repo.fail_next_insert = True
        with pytest.raises(SequenceConflict):
            await sql_store.append_progress(sid, 0, _entry())
        assert repo.entries[sid] == []

    @pytest.mark.asyncio
    async def test_unknown_session(self, sql_store):
        with pytest.raises(NotFoundError):
            await sql_store.append_progress("missing", 0, _entry())


class TestSessionsAndArtifacts:

    @pytest.mark.asyncio
    async def test_create_is_idempotent(self, sql_store, repo):
        first = await sql_store.create_session(SessionRecord(session_id="s1", intake_type="scenario"))
        again = await sql_store.create_session(SessionRecord(session_id="s1", intake_type="scenario"))
        assert first.created_at == again.created_at
        assert len(repo.sessions) == 1

    @pytest.mark.asyncio
    async def test_first_completion_wins(self, sql_store):
        sid = await _open(sql_store)
        first = CompletionOutput(personalized_brief="B1", first_session_guide="G1", experiments=["E1"])
        second = CompletionOutput(personalized_brief="B2", first_session_guide="G2", experiments=["E2"])

        await sql_store.write_completion(sid, first)
        await sql_store.write_completion(sid, second)

        assert await sql_store.read_completion(sid) == first
        assert (await sql_store.read_session(sid)).completed_at is not None

    @pytest.mark.asyncio
    async def test_contact_round_trip(self, sql_store):
        sid = await _open(sql_store)
        contact = ContactInfo(email="me@example.com")
        await sql_store.write_contact(sid, contact)
        assert (await sql_store.read_contact(sid)).email == "me@example.com"

    @pytest.mark.asyncio
    async def test_contact_unknown_session(self, sql_store):
        with pytest.raises(NotFoundError):
            await sql_store.write_contact("missing", ContactInfo(phone="555-0100"))

    @pytest.mark.asyncio
    async def test_missing_session_reads(self, sql_store):
        assert await sql_store.read_session("missing") is None
        assert await sql_store.read_completion("missing") is None
        assert await sql_store.read_progress("missing") == []

    @pytest.mark.asyncio
    async def test_session_stats(self, sql_store):
        await _open(sql_store, "a")
        await _open(sql_store, "b")
        await sql_store.create_session(SessionRecord(session_id="c", intake_type="closing"))
        await sql_store.write_completion(
            "a", CompletionOutput(personalized_brief="B", first_session_guide="G", experiments=["E"]),
        )

        stats = await sql_store.session_stats()
        assert (stats.total, stats.completed, stats.in_progress) == (3, 1, 2)
        stats = await sql_store.session_stats("closing")
        assert (stats.total, stats.completed, stats.in_progress) == (1, 0, 1)
