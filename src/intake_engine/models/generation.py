"""Generative-collaborator result models.

``Usage`` is passed through for telemetry only; the engine never interprets it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class Usage(BaseModel):
    """Token (or other unit) accounting reported by the model provider."""

    prompt_units: int = 0
    completion_units: int = 0
    total_units: int = 0


class GenerationResult(BaseModel):
    """Output of a single ``Generator.generate`` call.

    ``data`` is an instance of the requested schema, or raw text when no
    schema was requested.
    """

    data: Any
    usage: Usage = Usage()
    duration_ms: float = 0.0


class ReflectionOutput(BaseModel):
    """Structured-output schema for a generated reflection."""

    reflection: str = Field(
        min_length=1,
        description=(
            "A 1-3 sentence supportive response that reflects back the meaning, "
            "normalizes the experience, and encourages continuation. No diagnosis, "
            "no prescriptive advice."
        ),
    )
