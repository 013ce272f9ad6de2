"""Session, transcript and step models — the contract between the engine and callers.

These models define what the engine persists through a ``TranscriptStore``
and what it returns at each step.  They are intentionally decoupled from the
ORM models in ``intake_db`` so that API consumers never see database internals.

All models serialise to camelCase on the wire (``by_alias``) and accept
either spelling on input.

Step types:
  - NextStep: the answer was recorded; present the next question
  - CompleteStep: the answer to the last question was recorded

The ``StepResult`` union covers both cases so callers can dispatch on ``type``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    """Base for models that cross the API boundary."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Transcript records ---

class ProgressEntry(WireModel):
    """One answered question.  Immutable once appended."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    question_id: str
    # Snapshot of the prompt at answer time, independent of later definition edits
    question_prompt: str
    answer: str | list[str]
    # Free text accompanying a selected escape option
    escape_text: str | None = None
    reflection: str = ""
    timestamp: datetime = Field(default_factory=_utcnow)


class CompletionOutput(WireModel):
    """End-of-intake artifacts, generated once per session.

    Also used as the structured-output schema for the synthesis call.
    """

    personalized_brief: str = Field(
        min_length=1,
        description=(
            "How therapy might help: normalizes the experience, links patterns "
            "to therapy mechanisms, includes example change trajectories, and "
            "explicitly avoids guarantees."
        ),
    )
    first_session_guide: str = Field(
        min_length=1,
        description=(
            "How to make the most of the first session: what to ask for, what to "
            "ask about, how to talk about goals, how to assess fit, with example phrases."
        ),
    )
    experiments: list[str] = Field(
        min_length=1,
        description=(
            "2-3 safe, personalized pre-therapy experiments, framed as optional, "
            "low intensity and reversible, designed to be discussed in session one."
        ),
    )


class ContactInfo(WireModel):
    """Optional contact details left at the end of an intake."""

    email: str | None = None
    phone: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)


class SessionRecord(WireModel):
    """Binds an opaque session key to the intake it is answering."""

    session_id: str
    intake_type: str
    created_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None


# --- Client-facing question payload ---

class OptionPayload(WireModel):
    value: str
    label: str
    is_escape_option: bool = False


class QuestionPayload(WireModel):
    """Flattened question for API consumers.

    Strips the author-facing clinical intention and presents only what the
    UI needs to render the question.
    """

    id: str
    prompt: str
    type: str
    # Only present for single_select / multi_select
    options: list[OptionPayload] | None = None
    examples: list[str] | None = None


# --- Steps ---

class NextStep(WireModel):
    """Engine step: answer recorded, next question to present."""

    type: Literal["next"] = "next"
    question_index: int
    question: QuestionPayload
    reflection: str = ""


class CompleteStep(WireModel):
    """Engine step: the final answer was recorded; synthesis may run."""

    type: Literal["complete"] = "complete"
    reflection: str = ""


# Callers can match on step.type to dispatch rendering logic.
StepResult = NextStep | CompleteStep


class StepResponse(WireModel):
    """Step response shape for the transport layer."""

    next_question: QuestionPayload | None = None
    reflection: str | None = None
    is_complete: bool

    @classmethod
    def from_step(cls, step: StepResult) -> "StepResponse":
        if isinstance(step, CompleteStep):
            return cls(reflection=step.reflection, is_complete=True)
        return cls(
            next_question=step.question,
            reflection=step.reflection,
            is_complete=False,
        )


class CurrentStep(WireModel):
    """Read-only view of where a session stands."""

    session_id: str
    intake_type: str
    question_index: int
    total_steps: int
    question: QuestionPayload | None = None
    is_complete: bool


# --- Intake overview & session data ---

class IntakeOverview(WireModel):
    """What a client needs to start an intake (and prefetch its questions)."""

    intake_type: str
    name: str
    description: str
    total_steps: int
    first_question: QuestionPayload
    all_questions: list[QuestionPayload]


class SessionData(WireModel):
    """Everything stored for one session."""

    session: SessionRecord
    progress: list[ProgressEntry]
    completion: CompletionOutput | None = None
    contact: ContactInfo | None = None


class SessionStart(WireModel):
    """Returned when a session is opened (or re-opened with the same key)."""

    session: SessionRecord
    overview: IntakeOverview
    # Where the client should resume; 0 for a fresh session
    question_index: int = 0


class SessionStats(WireModel):
    """Operator dashboard counts."""

    total: int
    completed: int
    # Started but without a stored completion
    in_progress: int
