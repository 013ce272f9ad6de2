"""ValidAnswer — a submitted answer that passed validation."""

from __future__ import annotations

from pydantic import BaseModel


class ValidAnswer(BaseModel):
    """Normalised answer ready to be recorded.

    ``value`` is the trimmed text for free_text, a single option value for
    single_select, and an ordered de-duplicated list of option values for
    multi_select.
    """

    value: str | list[str]
    escape_text: str | None = None

    @property
    def selected_values(self) -> list[str]:
        """The answer as a list (free text yields a one-element list)."""
        if isinstance(self.value, list):
            return list(self.value)
        return [self.value]
