"""TemplateSelector — deterministic reflections for multi-select questions.

Each templated question owns an independent rule table (see
``intake_engine.models.reflection``).  The selector maps the *set* of
selected option values to one hand-authored response: rules are checked in
declaration order and the first rule whose predicates all hold wins, so the
"none of these" membership rule declared first short-circuits the count
thresholds that follow it.

Selection depends only on the set of values, never on their order or on
option labels.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from intake_engine.errors import ConfigurationError
from intake_engine.models.question import BaseQuestion
from intake_engine.models.reflection import SelectionPredicate, TemplateRule


class TemplateSelector:
    """Evaluates one question's rule table against a selection."""

    def __init__(self, question_id: str, rules: Sequence[TemplateRule]) -> None:
        self.question_id = question_id
        self._rules = tuple(rules)

    def select(self, selected: Iterable[str]) -> str:
        """Return the response of the first matching rule."""
        values = frozenset(selected)
        for rule in self._rules:
            if all(self._eval_predicate(pred, values) for pred in rule.when):
                return rule.response
        # Unreachable for tables that passed validate_rule_table()
        raise ConfigurationError(
            f"No template rule matched for question {self.question_id!r}"
        )

    # ------------------------------------------------------------------
    # Predicate evaluation
    # ------------------------------------------------------------------

    @staticmethod
    def _eval_predicate(pred: SelectionPredicate, values: frozenset[str]) -> bool:
        """Apply one operator to the selected-value set."""
        op = pred.op
        count = len(values)

        if op == "contains":
            return pred.value in values
        if op == "contains_any":
            return any(v in values for v in pred.value)
        if op == "contains_all":
            return all(v in values for v in pred.value)
        if op == "excludes_all":
            return not any(v in values for v in pred.value)

        # --- Count thresholds ---
        if op == "count_eq":
            return count == pred.value
        if op == "count_ge":
            return count >= pred.value
        if op == "count_le":
            return count <= pred.value
        # count_between
        lo, hi = pred.value
        return lo <= count <= hi


def validate_rule_table(question: BaseQuestion, rules: Sequence[TemplateRule]) -> None:
    """Check a rule table against the question it targets.

    Raises:
        ConfigurationError: if the question is not multi_select, the table is
            empty, does not end with a catch-all rule, or references option
            values the question does not declare.
    """
    if question.question_type != "multi_select":
        raise ConfigurationError(
            f"Reflection template for {question.id!r} targets a "
            f"{question.question_type} question; templates require multi_select"
        )
    if not rules:
        raise ConfigurationError(f"Reflection template for {question.id!r} has no rules")
    if not rules[-1].is_catch_all:
        raise ConfigurationError(
            f"Reflection template for {question.id!r} must end with a catch-all rule"
        )

    known = set(question.option_values)
    for rule in rules:
        for pred in rule.when:
            missing = [v for v in pred.referenced_values if v not in known]
            if missing:
                raise ConfigurationError(
                    f"Reflection template for {question.id!r} references unknown "
                    f"option value(s): {', '.join(missing)}"
                )
