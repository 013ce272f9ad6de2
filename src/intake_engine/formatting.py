"""Answer formatting for prompts.

Select answers are persisted as option values; prompts show the display
labels instead so the model reads what the user actually saw.
"""

from __future__ import annotations

from intake_engine.models.question import BaseQuestion


def format_answer(
    answer: str | list[str],
    question: BaseQuestion | None = None,
    escape_text: str | None = None,
) -> str:
    """Render an answer as prompt text.

    Lists become one ``- item`` line per value.  When *question* is given,
    option values are replaced by their labels, and the escape option's
    label is followed by the user's own words.
    """
    if isinstance(answer, str) and (question is None or not question.is_select):
        return answer

    values = answer if isinstance(answer, list) else [answer]
    lines = []
    for value in values:
        text = value
        if question is not None and question.is_select:
            opt = question.get_option(value)
            if opt is not None:
                text = opt.label
                if opt.is_escape_option and escape_text:
                    text = f"{opt.label}: {escape_text}"
        lines.append(f"- {text}")
    return "\n".join(lines)
