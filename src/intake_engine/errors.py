"""Typed exceptions raised by the intake engine.

Every failure the engine detects maps onto one of these classes so the
transport layer can translate it without inspecting messages:

    ValidationError       — malformed or empty answer; client must correct it
    SequenceError         — out-of-order or duplicate submission
    SequenceConflict      — raised by a TranscriptStore when an append loses
                            the "expected index" race (a SequenceError)
    NotFoundError         — unknown session, question index, or intake type
    UnknownIntakeType     — intake key not registered (a NotFoundError)
    GenerationError       — generative collaborator failed or timed out
    EmptyTranscriptError  — completion requested with zero answers
    ConfigurationError    — conflicting or invalid intake definitions (load time)
"""


class IntakeError(Exception):
    """Base class for all engine errors."""


class ValidationError(IntakeError):
    """The submitted answer does not satisfy the question's constraints."""


class SequenceError(IntakeError):
    """The submission does not target the session's next expected index."""


class SequenceConflict(SequenceError):
    """An atomic append found the log length different from the expected index."""

    def __init__(self, session_id: str, expected_index: int, actual_length: int) -> None:
        self.session_id = session_id
        self.expected_index = expected_index
        self.actual_length = actual_length
        super().__init__(
            f"Append conflict for session {session_id}: expected index "
            f"{expected_index}, log has {actual_length} entries"
        )


class NotFoundError(IntakeError):
    """A session, question, or intake could not be resolved."""


class UnknownIntakeType(NotFoundError):
    """The intake-type key is not registered."""


class GenerationError(IntakeError):
    """The generative collaborator failed, timed out, or returned unusable data."""


class EmptyTranscriptError(IntakeError):
    """Completion was requested for a transcript with no entries."""


class ConfigurationError(IntakeError):
    """An intake definition is invalid; raised while loading, never per request."""
