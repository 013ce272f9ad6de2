"""CompletionSynthesizer — turns a finished transcript into the final artifacts.

One generative call over the whole transcript produces the personalized
brief, the first-session guide, and the pre-therapy experiments.  The
synthesizer itself does not check whether a completion already exists;
``IntakePipeline.complete`` reads the store first and never calls it twice
for one session.
"""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from intake_engine.constants import GENERATION_TIMEOUT_SECONDS
from intake_engine.errors import EmptyTranscriptError, GenerationError
from intake_engine.interfaces import Generator
from intake_engine.llm import generate_with_timeout
from intake_engine.models.question import BaseQuestion
from intake_engine.models.session import CompletionOutput, ProgressEntry
from intake_engine.prompt import PromptManager

logger = logging.getLogger(__name__)


class CompletionSynthesizer:
    """Synthesizes ``CompletionOutput`` from a transcript.

    Args:
        generator: generative model for the synthesis call
        prompts: prompt renderer; a default ``PromptManager`` when None
        generation_timeout: seconds before the call is abandoned
    """

    def __init__(
        self,
        generator: Generator,
        *,
        prompts: PromptManager | None = None,
        generation_timeout: float | None = GENERATION_TIMEOUT_SECONDS,
    ) -> None:
        self._generator = generator
        self._prompts = prompts or PromptManager()
        self._generation_timeout = generation_timeout

    async def synthesize(
        self,
        transcript: Sequence[ProgressEntry],
        questions: Mapping[str, BaseQuestion] | None = None,
    ) -> CompletionOutput:
        """Generate the completion artifacts for *transcript*.

        Args:
            questions: optional id → question map so the prompt shows
                option labels rather than stored values.

        Raises:
            EmptyTranscriptError: the transcript has no entries.
            GenerationError: the call failed, timed out, or returned an
                empty brief, empty guide, or no usable experiment.
        """
        if not transcript:
            raise EmptyTranscriptError("Cannot synthesize a completion from an empty transcript")

        system_prompt, prompt = self._prompts.render_completion(transcript, questions)
        result = await generate_with_timeout(
            self._generator,
            prompt,
            system_prompt,
            CompletionOutput,
            timeout=self._generation_timeout,
            purpose="completion synthesis",
        )
        output: CompletionOutput = result.data

        experiments = [e.strip() for e in output.experiments if e.strip()]
        brief = output.personalized_brief.strip()
        guide = output.first_session_guide.strip()
        if not brief or not guide or not experiments:
            raise GenerationError("Completion synthesis returned empty sections")

        logger.info(
            "Synthesized completion from %d entries (%d experiments)",
            len(transcript), len(experiments),
        )
        return CompletionOutput(
            personalized_brief=brief,
            first_session_guide=guide,
            experiments=experiments,
        )
