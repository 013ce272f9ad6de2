"""StepProcessor — the per-session state machine.

Stateless engine pattern: each call loads the session's progress from the
``TranscriptStore``, computes the step, appends at most one entry, and
returns the result.  No in-memory state is kept between calls.

States:

    AwaitingAnswer(i)   for i in [0, total_steps), where i == len(progress)
    Completed           once len(progress) == total_steps

One ``submit`` call runs:

    1. load session + progress; question_index must equal len(progress)
    2. resolve the question at question_index
    3. validate the answer
    4. decide the reflection plan and execute it (skip / template / generate)
    5. append the entry, conditional on the log still having question_index entries
    6. return NextStep for the following question, or CompleteStep after the last

If step 4 fails nothing is appended, so the client can simply retry the
same index.  Two concurrent submits for the same index race at step 5;
the store lets exactly one through.
"""

from __future__ import annotations

import logging
from typing import Any

from intake_engine.constants import GENERATION_TIMEOUT_SECONDS
from intake_engine.errors import GenerationError, NotFoundError, SequenceConflict, SequenceError
from intake_engine.escape import EscapeOptionDetector
from intake_engine.interfaces import Generator, TranscriptStore
from intake_engine.llm import generate_with_timeout
from intake_engine.models.answer import ValidAnswer
from intake_engine.models.generation import ReflectionOutput
from intake_engine.models.question import BaseQuestion, Question
from intake_engine.models.reflection import GeneratePlan, ReflectionPlan, SkipPlan, TemplatePlan
from intake_engine.models.session import (
    CompleteStep,
    CurrentStep,
    NextStep,
    OptionPayload,
    ProgressEntry,
    QuestionPayload,
    SessionRecord,
    StepResult,
)
from intake_engine.prompt import PromptManager
from intake_engine.registry import QuestionRegistry
from intake_engine.validator import AnswerValidator

logger = logging.getLogger(__name__)


def question_to_payload(question: Question) -> QuestionPayload:
    """Convert a typed question to the flat client payload.

    The clinical intention never leaves the server.
    """
    payload = QuestionPayload(
        id=question.id,
        prompt=question.prompt,
        type=question.question_type,
        examples=list(question.examples) or None,
    )
    if question.is_select:
        payload.options = [
            OptionPayload(value=o.value, label=o.label, is_escape_option=o.is_escape_option)
            for o in question.options
        ]
    return payload


class StepProcessor:
    """Drives one session from its first question to completion.

    Args:
        registry: a loaded :class:`QuestionRegistry`
        store: transcript persistence
        generator: generative model used for ``GeneratePlan`` reflections
        prompts: prompt renderer; a default ``PromptManager`` when None
        generation_timeout: seconds before a reflection call is abandoned
    """

    def __init__(
        self,
        registry: QuestionRegistry,
        store: TranscriptStore,
        generator: Generator,
        *,
        prompts: PromptManager | None = None,
        validator: AnswerValidator | None = None,
        detector: EscapeOptionDetector | None = None,
        generation_timeout: float | None = GENERATION_TIMEOUT_SECONDS,
    ) -> None:
        self._registry = registry
        self._store = store
        self._generator = generator
        self._prompts = prompts or PromptManager()
        self._detector = detector or EscapeOptionDetector()
        self._validator = validator or AnswerValidator(self._detector)
        self._generation_timeout = generation_timeout

    # ==================================================================
    # Public API
    # ==================================================================

    async def submit(
        self,
        session_id: str,
        question_index: int,
        raw_answer: Any,
        escape_text: str | None = None,
    ) -> StepResult:
        """Record the answer to ``question_index`` and advance the session.

        Raises:
            NotFoundError: unknown session, or index past the last question.
            SequenceError: ``question_index`` is not the next expected index,
                or a concurrent submit recorded it first.
            ValidationError: the answer does not fit the question.
            GenerationError: a generated reflection failed or timed out.
        """
        session = await self._load_session(session_id)
        intake_type = session.intake_type
        history = await self._store.read_progress(session_id)

        # --- 1. Sequence check ---
        expected = len(history)
        if question_index != expected:
            logger.warning(
                "Out-of-order submit for session %s: got index %d, expected %d",
                session_id, question_index, expected,
            )
            raise SequenceError(
                f"Expected an answer for question index {expected}, got {question_index}"
            )

        # --- 2. Resolve question ---
        question = self._registry.get_by_index(intake_type, question_index)
        total_steps = self._registry.total_steps(intake_type)

        # --- 3. Validate ---
        answer = self._validator.validate(question, raw_answer, escape_text)
        if self._detector.detect(question, answer.selected_values):
            logger.debug("Escape option selected for %s/%s", session_id, question.id)

        # --- 4. Reflection ---
        plan = self._registry.get_strategy(intake_type).decide(question, answer)
        reflection = await self._execute_plan(
            plan, intake_type, question, answer, history, question_index, total_steps,
        )

        # --- 5. Conditional append ---
        entry = ProgressEntry(
            question_id=question.id,
            question_prompt=question.prompt,
            answer=answer.value,
            escape_text=answer.escape_text,
            reflection=reflection,
        )
        try:
            await self._store.append_progress(session_id, question_index, entry)
        except SequenceConflict as exc:
            logger.warning("%s", exc)
            raise SequenceError(
                f"Question index {question_index} was already answered"
            ) from exc

        # --- 6. Next or complete ---
        next_index = question_index + 1
        if next_index == total_steps:
            logger.info("Session %s answered all %d questions", session_id, total_steps)
            return CompleteStep(reflection=reflection)
        return NextStep(
            question_index=next_index,
            question=question_to_payload(self._registry.get_by_index(intake_type, next_index)),
            reflection=reflection,
        )

    async def current_step(self, session_id: str) -> CurrentStep:
        """Return where the session stands.  Read-only."""
        session = await self._load_session(session_id)
        history = await self._store.read_progress(session_id)
        total_steps = self._registry.total_steps(session.intake_type)
        index = len(history)

        question = None
        if index < total_steps:
            question = question_to_payload(
                self._registry.get_by_index(session.intake_type, index)
            )
        return CurrentStep(
            session_id=session_id,
            intake_type=session.intake_type,
            question_index=index,
            total_steps=total_steps,
            question=question,
            is_complete=index >= total_steps,
        )

    # ==================================================================
    # Internal helpers
    # ==================================================================

    async def _load_session(self, session_id: str) -> SessionRecord:
        session = await self._store.read_session(session_id)
        if session is None:
            raise NotFoundError(f"Session not found: {session_id}")
        return session

    async def _execute_plan(
        self,
        plan: ReflectionPlan,
        intake_type: str,
        question: BaseQuestion,
        answer: ValidAnswer,
        history: list[ProgressEntry],
        step_index: int,
        total_steps: int,
    ) -> str:
        """Turn a reflection plan into the reflection string."""
        if isinstance(plan, SkipPlan):
            return plan.acknowledgement

        if isinstance(plan, TemplatePlan):
            return self._registry.get_strategy(intake_type).render_template(plan, answer)

        assert isinstance(plan, GeneratePlan)
        questions = {q.id: q for q in self._registry.get_all(intake_type)}
        system_prompt, prompt = self._prompts.render_reflection(
            plan.prompt_context, history, step_index, total_steps, questions,
        )
        result = await generate_with_timeout(
            self._generator,
            prompt,
            system_prompt,
            ReflectionOutput,
            timeout=self._generation_timeout,
            purpose=f"reflection for {question.id}",
        )
        reflection = result.data.reflection.strip()
        if not reflection:
            raise GenerationError(f"Reflection for {question.id} came back empty")
        return reflection
