"""PromptManager — Jinja2-based prompt renderer for the generative model.

Loads templates from the ``template/`` directory and renders the two
prompts the engine needs:

    reflection  — one answered question plus the prior transcript
    completion  — the full transcript, for the end-of-intake synthesis

Each render returns a ``(system_prompt, user_prompt)`` pair.  The user
prompt ends with JSON response instructions built from the pydantic
schema the reply must satisfy.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping, Sequence, Type, get_origin

import jinja2
from pydantic import BaseModel

from intake_engine.constants import NO_PRIOR_CONTEXT, TRANSCRIPT_SEPARATOR
from intake_engine.formatting import format_answer
from intake_engine.models.generation import ReflectionOutput
from intake_engine.models.question import BaseQuestion
from intake_engine.models.reflection import PromptContext
from intake_engine.models.session import CompletionOutput, ProgressEntry


def _schema_example(schema: Type[BaseModel]) -> dict:
    """Build a placeholder JSON object showing the expected reply shape."""
    example = {}
    for name, field in schema.model_fields.items():
        key = field.alias or name
        example[key] = ["..."] if get_origin(field.annotation) is list else "..."
    return example


class PromptManager:
    """Jinja2-based prompt renderer.

    Args:
        template_dir: optional override for the template directory.
            Defaults to ``template/`` sibling of this module.
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        if template_dir is None:
            template_dir = Path(__file__).parent / "template"
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=jinja2.StrictUndefined,
        )
        self._env.filters["tojson"] = lambda v: json.dumps(v, ensure_ascii=False, indent=2)

    # ------------------------------------------------------------------
    # Public renderers
    # ------------------------------------------------------------------

    def render_reflection(
        self,
        context: PromptContext,
        history: Sequence[ProgressEntry],
        step_index: int,
        total_steps: int,
        questions: Mapping[str, BaseQuestion] | None = None,
    ) -> tuple[str, str]:
        """Render the reflection prompt for the answer at *step_index*.

        Args:
            context: question prompt and formatted answer of the current step.
            history: entries recorded before this step, in order.
            questions: optional id → question map used to show option
                labels instead of values in the prior context.
        """
        system = self.render("reflection_system.jinja2")
        user = self.render(
            "reflection_user.jinja2",
            question_number=step_index + 1,
            total_questions=total_steps,
            question_prompt=context.question_prompt,
            user_answer=context.answer_text,
            prior_context=self.format_prior_context(history, questions),
            response_schema=ReflectionOutput.model_json_schema(),
            response_example=_schema_example(ReflectionOutput),
        )
        return system, user

    def render_completion(
        self,
        transcript: Sequence[ProgressEntry],
        questions: Mapping[str, BaseQuestion] | None = None,
    ) -> tuple[str, str]:
        """Render the synthesis prompt for a complete transcript."""
        system = self.render("completion_system.jinja2")
        user = self.render(
            "completion_user.jinja2",
            all_answers=self.format_transcript(transcript, questions),
            response_schema=CompletionOutput.model_json_schema(),
            response_example=_schema_example(CompletionOutput),
        )
        return system, user

    def render(self, template_name: str, **context) -> str:
        """Render a named template with arbitrary context."""
        template = self._env.get_template(template_name)
        return template.render(**context).strip()

    # ------------------------------------------------------------------
    # Transcript formatting
    # ------------------------------------------------------------------

    @staticmethod
    def format_prior_context(
        history: Sequence[ProgressEntry],
        questions: Mapping[str, BaseQuestion] | None = None,
    ) -> str:
        """Prior answers as plain ``Question/Answer/Reflection`` blocks."""
        if not history:
            return NO_PRIOR_CONTEXT

        blocks = []
        for i, entry in enumerate(history):
            answer = _entry_answer(entry, questions)
            blocks.append(
                f"Question {i + 1}: {entry.question_prompt}\n"
                f"Answer: {answer}\n"
                f"Reflection: {entry.reflection}"
            )
        return "\n\n".join(blocks)

    @staticmethod
    def format_transcript(
        transcript: Sequence[ProgressEntry],
        questions: Mapping[str, BaseQuestion] | None = None,
    ) -> str:
        """The full transcript as markdown sections for the synthesis prompt."""
        sections = []
        for i, entry in enumerate(transcript):
            answer = _entry_answer(entry, questions)
            sections.append(
                f"### Question {i + 1}: {entry.question_prompt}\n\n"
                f"**Answer:** {answer}\n\n"
                f"**Reflection shown:** {entry.reflection}"
            )
        return TRANSCRIPT_SEPARATOR.join(sections)


def _entry_answer(
    entry: ProgressEntry,
    questions: Mapping[str, BaseQuestion] | None,
) -> str:
    question = questions.get(entry.question_id) if questions else None
    return format_answer(entry.answer, question, entry.escape_text)
