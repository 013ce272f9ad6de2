"""AnswerValidator — checks a submitted answer against its question's type.

Pure: the only observable behaviour is the returned ``ValidAnswer`` or the
raised ``ValidationError``.  Messages are user-facing and safe to return to
the client.

Rules:
  - free_text: a string that is non-empty after trimming
  - single_select: exactly one known option value (bare string or 1-item list)
  - multi_select: a non-empty list of known option values; duplicates collapse
  - select types: when an escape option is selected, ``escape_text`` is
    required and must be non-empty; ``escape_text`` without an escape
    selection is rejected
"""

from __future__ import annotations

from typing import Any

from intake_engine.errors import ValidationError
from intake_engine.escape import EscapeOptionDetector
from intake_engine.models.answer import ValidAnswer
from intake_engine.models.question import BaseQuestion


class AnswerValidator:
    """Validates raw answers for every supported question type."""

    def __init__(self, detector: EscapeOptionDetector | None = None) -> None:
        self._detector = detector or EscapeOptionDetector()

    def validate(
        self,
        question: BaseQuestion,
        raw_answer: Any,
        escape_text: str | None = None,
    ) -> ValidAnswer:
        """Return the normalised answer or raise ``ValidationError``."""
        qt = question.question_type
        if qt == "free_text":
            return self._validate_free_text(raw_answer, escape_text)
        elif qt == "single_select":
            values = self._single_value(raw_answer)
        elif qt == "multi_select":
            values = self._multi_values(raw_answer)
        else:
            raise ValidationError(f"Unsupported question type: {qt}")

        unknown = [v for v in values if question.get_option(v) is None]
        if unknown:
            raise ValidationError(
                f"Unknown option value(s) for this question: {', '.join(unknown)}"
            )

        cleaned_escape = escape_text.strip() if isinstance(escape_text, str) else None
        if self._detector.detect(question, values):
            if not cleaned_escape:
                raise ValidationError("Please tell us a bit more about the option you chose")
        elif cleaned_escape:
            raise ValidationError(
                "Additional text is only accepted alongside a 'something else' option"
            )

        value: str | list[str] = values[0] if qt == "single_select" else values
        return ValidAnswer(value=value, escape_text=cleaned_escape or None)

    # ------------------------------------------------------------------
    # Shape helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_free_text(raw_answer: Any, escape_text: str | None) -> ValidAnswer:
        if not isinstance(raw_answer, str):
            raise ValidationError("Please provide a text answer")
        text = raw_answer.strip()
        if not text:
            raise ValidationError("Please provide an answer")
        if isinstance(escape_text, str) and escape_text.strip():
            raise ValidationError("Additional text is not accepted for this question")
        return ValidAnswer(value=text)

    @staticmethod
    def _single_value(raw_answer: Any) -> list[str]:
        if isinstance(raw_answer, str):
            values = [raw_answer]
        elif isinstance(raw_answer, list):
            values = raw_answer
        else:
            raise ValidationError("Please select an option")
        if not values or values == [""]:
            raise ValidationError("Please select an option")
        if len(values) > 1:
            raise ValidationError("Please select only one option")
        if not isinstance(values[0], str):
            raise ValidationError("Option values must be strings")
        return list(values)

    @staticmethod
    def _multi_values(raw_answer: Any) -> list[str]:
        if not isinstance(raw_answer, list):
            raise ValidationError("Please select at least one option")
        if not raw_answer:
            raise ValidationError("Please select at least one option")
        if not all(isinstance(v, str) for v in raw_answer):
            raise ValidationError("Option values must be strings")
        # Collapse duplicates, keep first-seen order
        return list(dict.fromkeys(raw_answer))
