"""Abstract interfaces for the engine's external collaborators.

The engine never talks to a database or a model provider directly.  It is
handed a ``TranscriptStore`` and a ``Generator`` at construction time and
only ever calls the methods below.

Shipped implementations:

    TranscriptStore  — ``intake_db.SqlTranscriptStore`` (PostgreSQL)
    Generator        — ``intake_engine.llm.AnthropicGenerator``

Typical wiring::

    registry = QuestionRegistry(); registry.load()
    store: TranscriptStore = SqlTranscriptStore(session_factory)
    generator: Generator = AnthropicGenerator(api_key=...)

    processor = StepProcessor(registry, store, generator)
    step = await processor.submit(session_id, 0, "I feel stuck")
"""

from abc import ABC, abstractmethod
from typing import Optional, Type

from pydantic import BaseModel

from intake_engine.models.generation import GenerationResult
from intake_engine.models.session import (
    CompletionOutput,
    ContactInfo,
    ProgressEntry,
    SessionRecord,
    SessionStats,
)


class TranscriptStore(ABC):
    """Per-session persistence: an append-only progress log plus one
    completion record and an optional contact record.

    The only concurrency guarantee the engine relies on is
    :meth:`append_progress`: the append must be atomic per session and
    succeed only when the log length equals ``expected_index``.
    """

    @abstractmethod
    async def create_session(self, record: SessionRecord) -> SessionRecord:
        """Persist a new session binding.  Re-creating an existing key with
        the same intake type returns the stored record unchanged."""
        ...

    @abstractmethod
    async def read_session(self, session_id: str) -> Optional[SessionRecord]:
        """Return the session binding, or None if the key is unknown."""
        ...

    @abstractmethod
    async def append_progress(
        self,
        session_id: str,
        expected_index: int,
        entry: ProgressEntry,
    ) -> None:
        """Append *entry* iff the session's log currently has exactly
        ``expected_index`` entries.

        Raises
        ------
        SequenceConflict
            When the log length differs from ``expected_index``.  Nothing
            is written in that case.
        """
        ...

    @abstractmethod
    async def read_progress(self, session_id: str) -> list[ProgressEntry]:
        """Return the session's entries in append order (empty if none)."""
        ...

    @abstractmethod
    async def write_completion(
        self,
        session_id: str,
        completion: CompletionOutput,
    ) -> None:
        """Store the completion artifacts and stamp the session completed."""
        ...

    @abstractmethod
    async def read_completion(self, session_id: str) -> Optional[CompletionOutput]:
        ...

    @abstractmethod
    async def write_contact(self, session_id: str, contact: ContactInfo) -> None:
        """Store (or replace) the session's contact details."""
        ...

    @abstractmethod
    async def read_contact(self, session_id: str) -> Optional[ContactInfo]:
        ...

    @abstractmethod
    async def list_sessions(
        self,
        limit: int = 50,
        offset: int = 0,
        intake_type: Optional[str] = None,
    ) -> tuple[list[SessionRecord], int]:
        """Return one page of sessions, newest first, plus the total count."""
        ...

    @abstractmethod
    async def session_stats(self, intake_type: Optional[str] = None) -> SessionStats:
        """Count sessions overall and by completion state.

        Parameters
        ----------
        intake_type : str, optional
            Restrict the counts to one intake.

        Returns
        -------
        SessionStats
            ``completed`` counts sessions with a stored completion;
            ``in_progress`` is the remainder.
        """
        ...


class Generator(ABC):
    """Interface for the generative model.

    Implementations turn a system prompt plus user prompt into either a
    validated instance of *schema* or raw text.  Usage is reported for
    telemetry; the engine logs it and never interprets it.
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        schema: Optional[Type[BaseModel]] = None,
    ) -> GenerationResult:
        """Run one generation.

        Parameters
        ----------
        prompt:
            The user-turn prompt.
        system_prompt:
            Role and tone instructions.
        schema:
            Optional pydantic model the reply must validate against.  When
            given, ``GenerationResult.data`` is an instance of it.

        Returns
        -------
        GenerationResult
            ``data`` plus usage and wall-clock duration.

        Implementations may raise any exception on failure; the engine
        wraps it as ``GenerationError``.
        """
        ...
