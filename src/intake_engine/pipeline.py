"""IntakePipeline — the full intake flow behind one facade.

Wraps the ``StepProcessor`` (question by question) and the
``CompletionSynthesizer`` (once, at the end) and adds the session-level
operations around them: opening a session, reading it back, listing
sessions for operators, and saving contact details.

Lifecycle::

    start_session ──► submit_answer × N ──► complete ──► save_contact (optional)
                         │
                         └─ current_step (read-only, any time)

Usage::

    pipeline = IntakePipeline(registry, store, reflection_generator,
                              completion_generator=completion_generator)

    start = await pipeline.start_session(intake_type="therapy_readiness")
    sid = start.session.session_id

    step = await pipeline.submit_answer(sid, 0, "Work stress is everywhere")
    # step.type == "next" → render step.question, show step.reflection
    # ...
    # step.type == "complete"

    completion = await pipeline.complete(sid)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from intake_engine.constants import DEFAULT_INTAKE_TYPE, GENERATION_TIMEOUT_SECONDS
from intake_engine.engine import StepProcessor, question_to_payload
from intake_engine.errors import NotFoundError, SequenceError, ValidationError
from intake_engine.interfaces import Generator, TranscriptStore
from intake_engine.models.session import (
    CompletionOutput,
    ContactInfo,
    CurrentStep,
    IntakeOverview,
    SessionData,
    SessionRecord,
    SessionStart,
    SessionStats,
    StepResult,
)
from intake_engine.prompt import PromptManager
from intake_engine.registry import QuestionRegistry
from intake_engine.synthesizer import CompletionSynthesizer

logger = logging.getLogger(__name__)


class IntakePipeline:
    """Session-level orchestration over the step processor and synthesizer.

    Args:
        registry: a loaded :class:`QuestionRegistry`
        store: transcript persistence
        reflection_generator: model used for per-answer reflections
        completion_generator: model used for the synthesis; defaults to
            ``reflection_generator``
        prompts: shared prompt renderer
        generation_timeout: per-call bound for both kinds of generation
    """

    def __init__(
        self,
        registry: QuestionRegistry,
        store: TranscriptStore,
        reflection_generator: Generator,
        completion_generator: Generator | None = None,
        *,
        prompts: PromptManager | None = None,
        generation_timeout: float | None = GENERATION_TIMEOUT_SECONDS,
    ) -> None:
        self._registry = registry
        self._store = store
        prompts = prompts or PromptManager()
        self.processor = StepProcessor(
            registry,
            store,
            reflection_generator,
            prompts=prompts,
            generation_timeout=generation_timeout,
        )
        self.synthesizer = CompletionSynthesizer(
            completion_generator or reflection_generator,
            prompts=prompts,
            generation_timeout=generation_timeout,
        )

    @property
    def registry(self) -> QuestionRegistry:
        return self._registry

    # ==================================================================
    # Intake metadata
    # ==================================================================

    def get_overview(self, intake_type: str) -> IntakeOverview:
        """Name, description and client-safe questions of one intake."""
        intake = self._registry.get_intake(intake_type)
        payloads = [question_to_payload(q) for q in intake.questions]
        return IntakeOverview(
            intake_type=intake.id,
            name=intake.name,
            description=intake.description,
            total_steps=intake.total_steps,
            first_question=payloads[0],
            all_questions=payloads,
        )

    def list_intakes(self) -> list[IntakeOverview]:
        return [self.get_overview(t) for t in self._registry.intake_types()]

    # ==================================================================
    # Session lifecycle
    # ==================================================================

    async def start_session(
        self,
        session_id: str | None = None,
        intake_type: str = DEFAULT_INTAKE_TYPE,
    ) -> SessionStart:
        """Open a session, or resume it if *session_id* already exists.

        Raises:
            UnknownIntakeType: *intake_type* is not registered.
            ValidationError: the key is already bound to another intake.
        """
        overview = self.get_overview(intake_type)
        session_id = session_id or uuid.uuid4().hex

        existing = await self._store.read_session(session_id)
        if existing is not None:
            if existing.intake_type != intake_type:
                raise ValidationError(
                    f"Session {session_id} belongs to intake {existing.intake_type!r}"
                )
            progress = await self._store.read_progress(session_id)
            logger.info("Resuming session %s at index %d", session_id, len(progress))
            return SessionStart(
                session=existing, overview=overview, question_index=len(progress),
            )

        record = await self._store.create_session(
            SessionRecord(session_id=session_id, intake_type=intake_type)
        )
        # A concurrent start may have created the key first
        if record.intake_type != intake_type:
            raise ValidationError(
                f"Session {session_id} belongs to intake {record.intake_type!r}"
            )
        logger.info("Started session %s (%s)", session_id, intake_type)
        return SessionStart(session=record, overview=overview)

    async def current_step(self, session_id: str) -> CurrentStep:
        return await self.processor.current_step(session_id)

    async def submit_answer(
        self,
        session_id: str,
        question_index: int,
        raw_answer: Any,
        escape_text: str | None = None,
    ) -> StepResult:
        """Proxy to :meth:`StepProcessor.submit`."""
        return await self.processor.submit(session_id, question_index, raw_answer, escape_text)

    async def complete(self, session_id: str) -> CompletionOutput:
        """Return the session's completion, synthesizing it on first call.

        Raises:
            NotFoundError: unknown session.
            SequenceError: not every question has been answered yet.
            EmptyTranscriptError, GenerationError: from the synthesizer.
        """
        session = await self._load_session(session_id)

        existing = await self._store.read_completion(session_id)
        if existing is not None:
            logger.debug("Completion for %s already exists; returning stored copy", session_id)
            return existing

        progress = await self._store.read_progress(session_id)
        total_steps = self._registry.total_steps(session.intake_type)
        if progress and len(progress) < total_steps:
            raise SequenceError(
                f"Intake not finished: {len(progress)} of {total_steps} questions answered"
            )

        questions = {q.id: q for q in self._registry.get_all(session.intake_type)}
        completion = await self.synthesizer.synthesize(progress, questions)
        await self._store.write_completion(session_id, completion)

        # A concurrent call may have written first; the stored copy wins
        stored = await self._store.read_completion(session_id)
        return stored or completion

    async def save_contact(
        self,
        session_id: str,
        email: str | None = None,
        phone: str | None = None,
    ) -> ContactInfo:
        """Store contact details left at the end of the intake.

        Raises:
            NotFoundError: unknown session.
            ValidationError: neither email nor phone was provided.
        """
        await self._load_session(session_id)
        email = email.strip() if email else None
        phone = phone.strip() if phone else None
        if not email and not phone:
            raise ValidationError("Please provide an email address or phone number")
        if email and "@" not in email:
            raise ValidationError("Please provide a valid email address")

        contact = ContactInfo(
            email=email or None,
            phone=phone or None,
            timestamp=datetime.now(timezone.utc),
        )
        await self._store.write_contact(session_id, contact)
        logger.info("Saved contact details for session %s", session_id)
        return contact

    # ==================================================================
    # Read-back
    # ==================================================================

    async def get_session_data(self, session_id: str) -> SessionData:
        """Everything stored for one session."""
        session = await self._load_session(session_id)
        return SessionData(
            session=session,
            progress=await self._store.read_progress(session_id),
            completion=await self._store.read_completion(session_id),
            contact=await self._store.read_contact(session_id),
        )

    async def list_sessions(
        self,
        limit: int = 50,
        offset: int = 0,
        intake_type: str | None = None,
    ) -> tuple[list[SessionRecord], int]:
        return await self._store.list_sessions(limit=limit, offset=offset, intake_type=intake_type)

    async def get_stats(self, intake_type: str | None = None) -> SessionStats:
        """Dashboard counts; *intake_type* must be registered when given."""
        if intake_type is not None:
            self._registry.get_intake(intake_type)
        return await self._store.session_stats(intake_type)

    # ==================================================================
    # Internal helpers
    # ==================================================================

    async def _load_session(self, session_id: str) -> SessionRecord:
        session = await self._store.read_session(session_id)
        if session is None:
            raise NotFoundError(f"Session not found: {session_id}")
        return session
