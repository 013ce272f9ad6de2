"""Generative-model plumbing.

``AnthropicGenerator`` is the shipped ``Generator`` implementation.  It
sends one system + user message pair through the async Anthropic client
and, when a schema is requested, validates the JSON reply with pydantic.

``generate_with_timeout`` is the single call site the engine uses: it
bounds the call, converts every failure into ``GenerationError``, and
logs usage for telemetry.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Optional, Type

import anthropic
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from intake_engine.constants import GENERATION_MAX_TOKENS, REFLECTION_MODEL
from intake_engine.errors import GenerationError
from intake_engine.interfaces import Generator
from intake_engine.models.generation import GenerationResult, Usage

logger = logging.getLogger(__name__)

# Models sometimes wrap JSON in a markdown fence despite instructions
_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _strip_fences(text: str) -> str:
    match = _FENCE_RE.match(text.strip())
    return match.group(1) if match else text.strip()


class AnthropicGenerator(Generator):
    """``Generator`` backed by the Anthropic Messages API.

    Args:
        model: model id; reflections and completion typically use
            different generators with different models.
        api_key: falls back to the ``ANTHROPIC_API_KEY`` env var when None.
        client: pre-built ``AsyncAnthropic`` client, shared between
            generators so they reuse one connection pool.
    """

    def __init__(
        self,
        model: str = REFLECTION_MODEL,
        *,
        api_key: Optional[str] = None,
        client: Optional[anthropic.AsyncAnthropic] = None,
        max_tokens: int = GENERATION_MAX_TOKENS,
        temperature: float = 0.4,
    ) -> None:
        self.model = model
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def generate(
        self,
        prompt: str,
        system_prompt: str,
        schema: Optional[Type[BaseModel]] = None,
    ) -> GenerationResult:
        t0 = time.perf_counter()
        response = await self._client.messages.create(
            model=self.model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": prompt}],
        )
        duration_ms = (time.perf_counter() - t0) * 1000

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        ).strip()
        usage = Usage(
            prompt_units=response.usage.input_tokens,
            completion_units=response.usage.output_tokens,
            total_units=response.usage.input_tokens + response.usage.output_tokens,
        )

        if schema is None:
            data = text
        else:
            try:
                data = schema.model_validate_json(_strip_fences(text))
            except PydanticValidationError as exc:
                raise GenerationError(
                    f"{self.model} reply did not match {schema.__name__}: {exc}"
                ) from exc

        return GenerationResult(data=data, usage=usage, duration_ms=duration_ms)


async def generate_with_timeout(
    generator: Generator,
    prompt: str,
    system_prompt: str,
    schema: Optional[Type[BaseModel]] = None,
    *,
    timeout: Optional[float] = None,
    purpose: str = "generation",
) -> GenerationResult:
    """Run one generation bounded by *timeout* seconds.

    Raises:
        GenerationError: on timeout, on any exception from the generator,
            or when the result is not an instance of *schema*.
    """
    try:
        result = await asyncio.wait_for(
            generator.generate(prompt, system_prompt, schema),
            timeout=timeout,
        )
    except asyncio.TimeoutError as exc:
        raise GenerationError(f"{purpose} timed out after {timeout}s") from exc
    except GenerationError:
        raise
    except Exception as exc:
        raise GenerationError(f"{purpose} failed: {exc}") from exc

    if schema is not None and not isinstance(result.data, schema):
        raise GenerationError(
            f"{purpose} returned {type(result.data).__name__}, expected {schema.__name__}"
        )

    logger.info(
        "%s: %d prompt + %d completion units (%d total) in %.0f ms",
        purpose,
        result.usage.prompt_units,
        result.usage.completion_units,
        result.usage.total_units,
        result.duration_ms,
    )
    return result
