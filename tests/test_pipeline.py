"""IntakePipeline tests: session lifecycle from start to contact details."""

import pytest

from intake_engine.errors import (
    EmptyTranscriptError,
    GenerationError,
    NotFoundError,
    SequenceError,
    UnknownIntakeType,
    ValidationError,
)
from intake_engine.models.session import CompleteStep, CompletionOutput, SessionRecord
from intake_engine.pipeline import IntakePipeline

from conftest import SCENARIO_ANSWERS
from helpers.generator import FailingGenerator, ScriptedGenerator
from helpers.store import InMemoryTranscriptStore


async def _finish(pipeline, session_id):
    step = None
    for i, answer in enumerate(SCENARIO_ANSWERS):
        step = await pipeline.submit_answer(session_id, i, answer)
    return step


# =====================================================================
# Starting and resuming
# =====================================================================


class TestStartSession:

    @pytest.mark.asyncio
    async def test_new_session(self, pipeline, store):
        start = await pipeline.start_session(intake_type="scenario")
        assert start.question_index == 0
        assert start.overview.total_steps == 3
        assert start.overview.first_question.id == "q1_feelings"
        assert start.session.session_id in store.sessions

    @pytest.mark.asyncio
    async def test_client_supplied_key(self, pipeline):
        start = await pipeline.start_session("my-key", intake_type="scenario")
        assert start.session.session_id == "my-key"

    @pytest.mark.asyncio
    async def test_resume_reports_next_index(self, pipeline):
        await pipeline.start_session("s1", intake_type="scenario")
        await pipeline.submit_answer("s1", 0, "I feel anxious")

        resumed = await pipeline.start_session("s1", intake_type="scenario")
        assert resumed.question_index == 1

    @pytest.mark.asyncio
    async def test_resume_with_other_intake_rejected(self, pipeline):
        await pipeline.start_session("s1", intake_type="scenario")
        with pytest.raises(ValidationError):
            await pipeline.start_session("s1", intake_type="closing")

    @pytest.mark.asyncio
    async def test_racing_start_with_other_intake_rejected(self, registry, generator):
        """A key created between the read and the create keeps its intake."""

        class LateReadStore(InMemoryTranscriptStore):
            async def read_session(self, session_id):
                return None

        store = LateReadStore()
        store.sessions["s1"] = SessionRecord(session_id="s1", intake_type="closing")
        pipeline = IntakePipeline(registry, store, generator)

        with pytest.raises(ValidationError, match="closing"):
            await pipeline.start_session("s1", intake_type="scenario")
        assert store.sessions["s1"].intake_type == "closing"

    @pytest.mark.asyncio
    async def test_unknown_intake(self, pipeline):
        with pytest.raises(UnknownIntakeType):
            await pipeline.start_session(intake_type="nope")

    def test_list_intakes(self, pipeline):
        assert [o.intake_type for o in pipeline.list_intakes()] == ["closing", "scenario"]


# =====================================================================
# Completion
# =====================================================================


class TestComplete:

    @pytest.mark.asyncio
    async def test_complete_after_last_step(self, pipeline, store):
        await pipeline.start_session("s1", intake_type="scenario")
        assert isinstance(await _finish(pipeline, "s1"), CompleteStep)

        completion = await pipeline.complete("s1")
        assert completion.experiments
        assert store.sessions["s1"].completed_at is not None

    @pytest.mark.asyncio
    async def test_complete_is_idempotent(self, pipeline, store, generator):
        await pipeline.start_session("s1", intake_type="scenario")
        await _finish(pipeline, "s1")

        first = await pipeline.complete("s1")
        second = await pipeline.complete("s1")
        assert first == second
        completion_calls = [c for c in generator.calls if c["schema"] is CompletionOutput]
        assert len(completion_calls) == 1, "Synthesis runs once per session"
        assert store.completion_writes == 1

    @pytest.mark.asyncio
    async def test_complete_before_finish(self, pipeline):
        await pipeline.start_session("s1", intake_type="scenario")
        await pipeline.submit_answer("s1", 0, "I feel anxious")
        with pytest.raises(SequenceError):
            await pipeline.complete("s1")

    @pytest.mark.asyncio
    async def test_complete_with_no_answers(self, pipeline):
        await pipeline.start_session("s1", intake_type="scenario")
        with pytest.raises(EmptyTranscriptError):
            await pipeline.complete("s1")

    @pytest.mark.asyncio
    async def test_unknown_session(self, pipeline):
        with pytest.raises(NotFoundError):
            await pipeline.complete("missing")

    @pytest.mark.asyncio
    async def test_failed_synthesis_stores_nothing(self, registry, store):
        pipeline = IntakePipeline(
            registry, store, ScriptedGenerator(), completion_generator=FailingGenerator(),
        )
        await pipeline.start_session("s1", intake_type="scenario")
        await _finish(pipeline, "s1")

        with pytest.raises(GenerationError):
            await pipeline.complete("s1")
        assert await store.read_completion("s1") is None


# =====================================================================
# Contact details and read-back
# =====================================================================


class TestContactAndData:

    @pytest.mark.asyncio
    async def test_save_contact(self, pipeline):
        await pipeline.start_session("s1", intake_type="scenario")
        contact = await pipeline.save_contact("s1", email=" me@example.com ")
        assert contact.email == "me@example.com"
        assert contact.phone is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email, phone", [(None, None), ("  ", ""), ("not-an-email", None)])
    async def test_invalid_contact(self, pipeline, email, phone):
        await pipeline.start_session("s1", intake_type="scenario")
        with pytest.raises(ValidationError):
            await pipeline.save_contact("s1", email=email, phone=phone)

    @pytest.mark.asyncio
    async def test_contact_unknown_session(self, pipeline):
        with pytest.raises(NotFoundError):
            await pipeline.save_contact("missing", phone="555-0100")

    @pytest.mark.asyncio
    async def test_session_data(self, pipeline):
        await pipeline.start_session("s1", intake_type="scenario")
        await _finish(pipeline, "s1")
        await pipeline.complete("s1")
        await pipeline.save_contact("s1", phone="555-0100")

        data = await pipeline.get_session_data("s1")
        assert len(data.progress) == 3
        assert data.completion is not None
        assert data.contact.phone == "555-0100"

    @pytest.mark.asyncio
    async def test_list_sessions_filters_by_intake(self, pipeline):
        await pipeline.start_session("a", intake_type="scenario")
        await pipeline.start_session("b", intake_type="closing")
        await pipeline.start_session("c", intake_type="scenario")

        rows, total = await pipeline.list_sessions(intake_type="scenario")
        assert total == 2
        assert {r.session_id for r in rows} == {"a", "c"}

        rows, total = await pipeline.list_sessions(limit=1)
        assert total == 3
        assert len(rows) == 1


# =====================================================================
# Dashboard stats
# =====================================================================


class TestStats:

    @pytest.mark.asyncio
    async def test_counts_completed_and_in_progress(self, pipeline):
        for sid in ("a", "b", "c"):
            await pipeline.start_session(sid, intake_type="scenario")
        await _finish(pipeline, "a")
        await pipeline.complete("a")
        # Finished but never completed still counts as in progress
        await _finish(pipeline, "b")

        stats = await pipeline.get_stats()
        assert (stats.total, stats.completed, stats.in_progress) == (3, 1, 2), (
            f"Unexpected counts: {stats}"
        )

    @pytest.mark.asyncio
    async def test_filter_by_intake(self, pipeline):
        await pipeline.start_session("a", intake_type="scenario")
        await pipeline.start_session("b", intake_type="closing")
        await _finish(pipeline, "a")
        await pipeline.complete("a")

        scenario = await pipeline.get_stats("scenario")
        assert (scenario.total, scenario.completed, scenario.in_progress) == (1, 1, 0)
        closing = await pipeline.get_stats("closing")
        assert (closing.total, closing.completed, closing.in_progress) == (1, 0, 1)

    @pytest.mark.asyncio
    async def test_empty_store(self, pipeline):
        stats = await pipeline.get_stats()
        assert stats.total == 0
        assert stats.in_progress == 0

    @pytest.mark.asyncio
    async def test_unknown_intake(self, pipeline):
        with pytest.raises(UnknownIntakeType):
            await pipeline.get_stats("nope")
