"""ReflectionStrategy — picks how each answer gets its reflection.

Resolution is a static lookup by question id, in this exact precedence:

    1. skip      — id in the intake's ``skip_reflection`` table; the caller
                   shows the static acknowledgement, nothing is generated
    2. template  — id in the intake's ``reflection_templates`` registry;
                   a deterministic ``TemplateSelector`` picks the response
    3. generate  — everything else; the generative collaborator writes it

A question id present in both the skip table and the template registry is a
configuration error raised when the strategy is built (i.e. at load time).
"""

from __future__ import annotations

import logging

from intake_engine.errors import ConfigurationError
from intake_engine.formatting import format_answer
from intake_engine.models.answer import ValidAnswer
from intake_engine.models.intake import IntakeDefinition
from intake_engine.models.question import BaseQuestion
from intake_engine.models.reflection import (
    GeneratePlan,
    PromptContext,
    ReflectionPlan,
    SkipPlan,
    TemplatePlan,
)
from intake_engine.templates import TemplateSelector, validate_rule_table

logger = logging.getLogger(__name__)


class ReflectionStrategy:
    """Static reflection tables for one intake.

    Args:
        intake: the intake whose ``skip_reflection`` and
            ``reflection_templates`` tables drive the decision

    Raises:
        ConfigurationError: on conflicting tables, tables naming unknown
            questions, or invalid rule tables.
    """

    def __init__(self, intake: IntakeDefinition) -> None:
        self.intake_type = intake.id
        by_id = {q.id: q for q in intake.questions}

        overlap = sorted(set(intake.skip_reflection) & set(intake.reflection_templates))
        if overlap:
            raise ConfigurationError(
                f"Intake {intake.id!r}: question(s) {', '.join(overlap)} appear in both "
                f"skip_reflection and reflection_templates"
            )

        for qid in (*intake.skip_reflection, *intake.reflection_templates):
            if qid not in by_id:
                raise ConfigurationError(
                    f"Intake {intake.id!r}: reflection table references unknown question {qid!r}"
                )

        self._skip: dict[str, str] = dict(intake.skip_reflection)
        self._selectors: dict[str, TemplateSelector] = {}
        for qid, rules in intake.reflection_templates.items():
            validate_rule_table(by_id[qid], rules)
            self._selectors[qid] = TemplateSelector(qid, rules)

    # ------------------------------------------------------------------
    # Decision
    # ------------------------------------------------------------------

    def decide(self, question: BaseQuestion, answer: ValidAnswer) -> ReflectionPlan:
        """Return the reflection plan for an answered question."""
        if question.id in self._skip:
            plan = SkipPlan(acknowledgement=self._skip[question.id])
        elif question.id in self._selectors:
            plan = TemplatePlan(selector_key=question.id)
        else:
            plan = GeneratePlan(
                prompt_context=PromptContext(
                    question_id=question.id,
                    question_prompt=question.prompt,
                    answer_text=format_answer(answer.value, question, answer.escape_text),
                )
            )
        logger.debug("Reflection plan for %s/%s: %s", self.intake_type, question.id, plan.kind)
        return plan

    def render_template(self, plan: TemplatePlan, answer: ValidAnswer) -> str:
        """Run the selector named by a template plan against the answer."""
        return self._selectors[plan.selector_key].select(answer.selected_values)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_selector(self, question_id: str) -> TemplateSelector | None:
        return self._selectors.get(question_id)

    @property
    def skip_ids(self) -> frozenset[str]:
        return frozenset(self._skip)

    @property
    def template_ids(self) -> frozenset[str]:
        return frozenset(self._selectors)
