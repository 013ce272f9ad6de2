"""EscapeOptionDetector — decides when a selection needs a "please specify" field.

Detection is driven only by the ``is_escape_option`` flag on each option.
Labels are never inspected: "Mood or motivation" must not reveal a
free-text field just because it contains the letters of "other".
"""

from __future__ import annotations

from typing import Iterable

from intake_engine.models.question import BaseQuestion


class EscapeOptionDetector:
    """Metadata-driven escape option detection."""

    def detect(self, question: BaseQuestion, selected_values: Iterable[str]) -> bool:
        """True iff any selected value belongs to an option flagged as escape.

        Unknown values and free-text questions never count as escape selections.
        """
        if not question.is_select:
            return False
        for value in selected_values:
            opt = question.get_option(value)
            if opt is not None and opt.is_escape_option:
                return True
        return False

    def escape_values(self, question: BaseQuestion) -> list[str]:
        """Values of all escape options on the question (empty for free text)."""
        if not question.is_select:
            return []
        return [o.value for o in question.options if o.is_escape_option]
