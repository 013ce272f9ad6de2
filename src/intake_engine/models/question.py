"""Question type models for guided intakes.

Each question type maps to a specific UI component and answer shape:

    - free_text: open-ended text input; the answer is a single string
    - single_select: pick exactly one option; the answer is one option value
    - multi_select: pick one or more options; the answer is a list of values

Options carry a stable ``value`` (the only representation ever persisted),
a display-only ``label``, and an ``is_escape_option`` flag marking the
"something else" choice that requires an accompanying free-text answer.

The discriminated ``Question`` union uses ``question_type`` as its discriminator.
The ``question_mapper`` dict maps type strings to their Pydantic classes.
"""

from __future__ import annotations

import re
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Restricted vocabulary for persisted option values.
OPTION_VALUE_PATTERN = re.compile(r"^[a-z0-9_]+$")


# --- Options ---

class Option(BaseModel):
    """A selectable choice: persisted ``value`` plus display-only ``label``."""

    value: str
    label: str
    is_escape_option: bool = False

    @field_validator("value")
    @classmethod
    def _chk_value(cls, v: str) -> str:
        if not OPTION_VALUE_PATTERN.match(v):
            raise ValueError(
                f"option value {v!r} must contain only lowercase letters, digits and underscores"
            )
        return v


# --- Base question type ---

class BaseQuestion(BaseModel):
    """Fields shared by all question types."""

    # Unknown keys are definition typos (e.g. options on a free_text question)
    model_config = ConfigDict(extra="forbid")

    id: str
    order: int
    prompt: str
    # Placeholder hints rendered under the input
    examples: List[str] = []
    # Author-facing note on the purpose of the question; never sent to clients
    clinical_intention: Optional[str] = None

    @property
    def is_select(self) -> bool:
        return False


# --- User-facing question types ---

class FreeTextQuestion(BaseQuestion):
    """Open-ended text input."""

    question_type: Literal["free_text"] = "free_text"


class _SelectQuestion(BaseQuestion):
    """Shared option handling for select types."""

    options: List[Option]

    @model_validator(mode="after")
    def _chk_options(self):
        if not self.options:
            raise ValueError(f"question {self.id!r} must declare at least one option")
        values = [o.value for o in self.options]
        if len(values) != len(set(values)):
            raise ValueError(f"question {self.id!r} has duplicate option values")
        return self

    @property
    def is_select(self) -> bool:
        return True

    @property
    def option_values(self) -> list[str]:
        """Option values in declaration order."""
        return [o.value for o in self.options]

    def get_option(self, value: str) -> Option | None:
        """Return the option with the given value, or None."""
        for opt in self.options:
            if opt.value == value:
                return opt
        return None


class SingleSelectQuestion(_SelectQuestion):
    """Pick exactly one option."""

    question_type: Literal["single_select"] = "single_select"


class MultiSelectQuestion(_SelectQuestion):
    """Pick one or more options."""

    question_type: Literal["multi_select"] = "multi_select"


# --- Discriminated union of all question types ---

Question = Annotated[
    Union[
        FreeTextQuestion,
        SingleSelectQuestion,
        MultiSelectQuestion,
    ],
    Field(discriminator="question_type"),
]

# Maps question_type string → Pydantic class for deserialization from YAML.
question_mapper = {
    "free_text": FreeTextQuestion,
    "single_select": SingleSelectQuestion,
    "multi_select": MultiSelectQuestion,
}
