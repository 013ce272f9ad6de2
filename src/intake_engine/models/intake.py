"""IntakeDefinition — one complete questionnaire as loaded from YAML."""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel

from .question import Question
from .reflection import TemplateRule


class IntakeDefinition(BaseModel):
    """Ordered questions plus the static reflection tables for one intake type.

    ``questions`` is sorted by ``order`` when the registry loads the file,
    so list position equals step index.
    """

    id: str
    name: str
    description: str = ""
    questions: List[Question]
    # qid → static acknowledgement shown instead of a reflection
    skip_reflection: Dict[str, str] = {}
    # qid → ordered rule table for deterministic multi-select reflections
    reflection_templates: Dict[str, List[TemplateRule]] = {}

    @property
    def total_steps(self) -> int:
        return len(self.questions)
