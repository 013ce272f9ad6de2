"""QuestionRegistry — loads intake YAML definitions into typed models.

This is the single source of truth for questionnaire data at runtime.  The
registry is loaded once at startup, is never mutated afterwards, and is
shared read-only by every session.

Usage::

    registry = QuestionRegistry()       # defaults to the bundled intakes/
    registry.load()                     # parse every *.yaml file

    q = registry.get_by_index("therapy_readiness", 0)
    n = registry.total_steps("therapy_readiness")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from intake_engine.errors import ConfigurationError, NotFoundError, UnknownIntakeType
from intake_engine.models.intake import IntakeDefinition
from intake_engine.models.question import Question, question_mapper
from intake_engine.strategy import ReflectionStrategy

logger = logging.getLogger(__name__)

# Bundled intake definitions ship inside the package
DEFAULT_INTAKE_DIR = Path(__file__).parent / "intakes"


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


class QuestionRegistry:
    """Loads every intake under ``intake_dir`` and provides O(1) lookup.

    Attributes populated after :meth:`load`:

        intakes     — dict[intake_type, IntakeDefinition]
        strategies  — dict[intake_type, ReflectionStrategy]
    """

    def __init__(self, intake_dir: str | Path | None = None) -> None:
        self._base = Path(intake_dir) if intake_dir is not None else DEFAULT_INTAKE_DIR

        # Populated by load()
        self.intakes: dict[str, IntakeDefinition] = {}
        self.strategies: dict[str, ReflectionStrategy] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Parse every ``*.yaml`` file under the intake directory.

        Call this once at startup.

        Raises:
            FileNotFoundError: if the directory does not exist.
            ConfigurationError: if any definition is invalid.
        """
        if not self._base.is_dir():
            raise FileNotFoundError(f"Missing intake directory: {self._base}")

        for path in sorted(self._base.glob("*.yaml")):
            intake = self._load_intake(path)
            if intake.id in self.intakes:
                raise ConfigurationError(f"Duplicate intake id {intake.id!r} in {path.name}")
            # Building the strategy validates the reflection tables
            self.strategies[intake.id] = ReflectionStrategy(intake)
            self.intakes[intake.id] = intake

        logger.info(
            "QuestionRegistry loaded: %d intakes (%s)",
            len(self.intakes),
            ", ".join(f"{k}={v.total_steps}q" for k, v in self.intakes.items()),
        )

    def _load_intake(self, path: Path) -> IntakeDefinition:
        """Parse one intake file, ordering questions by their ``order`` field."""
        raw = load_yaml(path)
        if not isinstance(raw, dict):
            raise ConfigurationError(f"{path.name}: expected a mapping at the top level")

        questions: list[Question] = []
        for q_dict in raw.get("questions") or []:
            if not isinstance(q_dict, dict):
                raise ConfigurationError(
                    f"{path.name}: each question must be a mapping, got {q_dict!r}"
                )
            qtype = q_dict.get("question_type")
            cls = question_mapper.get(qtype)
            if cls is None:
                raise ConfigurationError(
                    f"Unknown question_type '{qtype}' in {path.name}/{q_dict.get('id')}"
                )
            try:
                questions.append(cls(**q_dict))
            except PydanticValidationError as exc:
                raise ConfigurationError(
                    f"Invalid question {q_dict.get('id')!r} in {path.name}: {exc}"
                ) from exc

        if not questions:
            raise ConfigurationError(f"{path.name}: intake has no questions")

        ids = [q.id for q in questions]
        if len(ids) != len(set(ids)):
            raise ConfigurationError(f"{path.name}: duplicate question ids")
        orders = [q.order for q in questions]
        if len(orders) != len(set(orders)):
            raise ConfigurationError(f"{path.name}: duplicate question order values")
        questions.sort(key=lambda q: q.order)

        try:
            return IntakeDefinition(**{**raw, "questions": questions})
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid intake definition in {path.name}: {exc}") from exc

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def get_intake(self, intake_type: str) -> IntakeDefinition:
        """Return the full definition for an intake type.

        Raises:
            UnknownIntakeType: if the key is not registered.
        """
        intake = self.intakes.get(intake_type)
        if intake is None:
            raise UnknownIntakeType(f"Unknown intake type: {intake_type}")
        return intake

    def get_strategy(self, intake_type: str) -> ReflectionStrategy:
        """Return the reflection strategy built for an intake type."""
        self.get_intake(intake_type)
        return self.strategies[intake_type]

    def get_by_index(self, intake_type: str, index: int) -> Question:
        """Return the question at a 0-based step index.

        Raises:
            UnknownIntakeType: if the key is not registered.
            NotFoundError: if the index is out of range.
        """
        questions = self.get_intake(intake_type).questions
        if index < 0 or index >= len(questions):
            raise NotFoundError(
                f"Question index {index} not found in intake {intake_type} "
                f"({len(questions)} questions)"
            )
        return questions[index]

    def get_all(self, intake_type: str) -> list[Question]:
        """Return all questions of an intake in step order."""
        return list(self.get_intake(intake_type).questions)

    def total_steps(self, intake_type: str) -> int:
        """Return the number of questions in an intake."""
        return self.get_intake(intake_type).total_steps

    def intake_types(self) -> list[str]:
        """Registered intake-type keys, sorted."""
        return sorted(self.intakes)
