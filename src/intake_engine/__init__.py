"""intake_engine — Guided intake questionnaire SDK.

Public API:
    IntakePipeline        — session-level facade (start, step, complete, contact)
    StepProcessor         — per-session state machine: validate → reflect → append
    CompletionSynthesizer — full transcript → brief, first-session guide, experiments
    QuestionRegistry      — loads intake YAML into typed models with lookup helpers
    AnswerValidator       — checks raw answers against question constraints
    EscapeOptionDetector  — metadata-driven "please specify" detection
    ReflectionStrategy    — skip / template / generate decision per question
    PromptManager         — Jinja2 prompt renderer
    AnthropicGenerator    — Generator backed by the Anthropic Messages API

External interfaces:
    TranscriptStore       — ABC for per-session persistence
    Generator             — ABC for the generative model

Step models:
    StepResult            — union of NextStep and CompleteStep
    NextStep              — answer recorded; present the next question
    CompleteStep          — final answer recorded
    CompletionOutput      — end-of-intake artifacts
"""

from intake_engine.engine import StepProcessor
from intake_engine.errors import (
    ConfigurationError,
    EmptyTranscriptError,
    GenerationError,
    IntakeError,
    NotFoundError,
    SequenceConflict,
    SequenceError,
    UnknownIntakeType,
    ValidationError,
)
from intake_engine.escape import EscapeOptionDetector
from intake_engine.interfaces import Generator, TranscriptStore
from intake_engine.llm import AnthropicGenerator
from intake_engine.models.session import (
    CompleteStep,
    CompletionOutput,
    ContactInfo,
    NextStep,
    ProgressEntry,
    QuestionPayload,
    SessionRecord,
    StepResult,
)
from intake_engine.pipeline import IntakePipeline
from intake_engine.prompt import PromptManager
from intake_engine.registry import QuestionRegistry
from intake_engine.strategy import ReflectionStrategy
from intake_engine.synthesizer import CompletionSynthesizer
from intake_engine.validator import AnswerValidator

__all__ = [
    # Engine & registry
    "IntakePipeline",
    "StepProcessor",
    "CompletionSynthesizer",
    "QuestionRegistry",
    "AnswerValidator",
    "EscapeOptionDetector",
    "ReflectionStrategy",
    "PromptManager",
    "AnthropicGenerator",
    # Interfaces
    "TranscriptStore",
    "Generator",
    # Session / step
    "CompleteStep",
    "CompletionOutput",
    "ContactInfo",
    "NextStep",
    "ProgressEntry",
    "QuestionPayload",
    "SessionRecord",
    "StepResult",
    # Errors
    "IntakeError",
    "ValidationError",
    "SequenceError",
    "SequenceConflict",
    "NotFoundError",
    "UnknownIntakeType",
    "GenerationError",
    "EmptyTranscriptError",
    "ConfigurationError",
]
