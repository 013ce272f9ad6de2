"""Reflection configuration and plan models.

Template rule tables are declared per question in the intake YAML::

    reflection_templates:
      q4_tried_already:
        - when: [{op: contains, value: nothing_yet}]
          response: "Not having tried anything yet is completely fine..."
        - when: [{op: count_ge, value: 4}]
          response: "You've put real effort into finding what works..."
        - response: "It's good that you've been trying to address this..."

Rules are evaluated in declaration order; the first rule whose ``when``
predicates all hold fires.  A rule with no predicates is a catch-all.

``ReflectionPlan`` is the tagged variant produced by the strategy for one
question: skip (static acknowledgement), template (deterministic selector),
or generate (generative call).
"""

from __future__ import annotations

from typing import Annotated, Any, List, Literal, Union

from pydantic import BaseModel, Field, model_validator


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class SelectionPredicate(BaseModel):
    """A single condition over the *set* of selected option values.

    Operators:
      - contains: value is selected
      - contains_any, contains_all: set membership against a list of values
      - excludes_all: none of the listed values is selected
      - count_eq, count_ge, count_le: number of distinct selected values
      - count_between: count is within [min, max] inclusive
    """

    op: Literal[
        "contains", "contains_any", "contains_all", "excludes_all",
        "count_eq", "count_ge", "count_le", "count_between",
    ]
    value: Any

    @model_validator(mode="after")
    def _chk(self):
        if self.op in ("contains_any", "contains_all", "excludes_all"):
            if not isinstance(self.value, list) or not self.value:
                raise ValueError(f"'{self.op}' expects a non-empty list of option values")
        elif self.op == "count_between":
            if (
                not isinstance(self.value, list)
                or len(self.value) != 2
                or not all(_is_int(v) for v in self.value)
                or self.value[0] > self.value[1]
            ):
                raise ValueError("'count_between' expects [min, max] integers with min <= max")
        elif self.op.startswith("count_"):
            if not _is_int(self.value):
                raise ValueError(f"'{self.op}' expects an integer")
        elif not isinstance(self.value, str):
            raise ValueError("'contains' expects a single option value")
        return self

    @property
    def referenced_values(self) -> list[str]:
        """Option values this predicate mentions (empty for count operators)."""
        if self.op == "contains":
            return [self.value]
        if self.op in ("contains_any", "contains_all", "excludes_all"):
            return list(self.value)
        return []


class TemplateRule(BaseModel):
    """If ALL predicates in ``when`` hold, respond with ``response``."""

    when: List[SelectionPredicate] = []
    response: str

    @property
    def is_catch_all(self) -> bool:
        return not self.when


# --- Plans ---

class SkipPlan(BaseModel):
    """No reflection; the caller shows a static acknowledgement instead."""

    kind: Literal["skip"] = "skip"
    acknowledgement: str = ""


class TemplatePlan(BaseModel):
    """Deterministic reflection chosen from the question's rule table."""

    kind: Literal["template"] = "template"
    selector_key: str


class PromptContext(BaseModel):
    """What a generated reflection is built from."""

    question_id: str
    question_prompt: str
    # Human-readable rendering of the answer (labels for select types)
    answer_text: str


class GeneratePlan(BaseModel):
    """Reflection produced by the generative collaborator."""

    kind: Literal["generate"] = "generate"
    prompt_context: PromptContext


ReflectionPlan = Annotated[
    Union[SkipPlan, TemplatePlan, GeneratePlan],
    Field(discriminator="kind"),
]
