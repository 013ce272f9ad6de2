"""Public model re-exports for intake_engine.

Consumers should import from ``intake_engine.models`` rather than
reaching into sub-modules directly.
"""

# --- Questions ---
from intake_engine.models.question import (
    OPTION_VALUE_PATTERN,
    BaseQuestion,
    FreeTextQuestion,
    MultiSelectQuestion,
    Option,
    Question,
    SingleSelectQuestion,
    question_mapper,
)

# --- Intake ---
from intake_engine.models.intake import IntakeDefinition

# --- Reflection ---
from intake_engine.models.reflection import (
    GeneratePlan,
    PromptContext,
    ReflectionPlan,
    SelectionPredicate,
    SkipPlan,
    TemplatePlan,
    TemplateRule,
)

# --- Answers ---
from intake_engine.models.answer import ValidAnswer

# --- Session / step ---
from intake_engine.models.session import (
    CompleteStep,
    CompletionOutput,
    ContactInfo,
    CurrentStep,
    IntakeOverview,
    NextStep,
    OptionPayload,
    ProgressEntry,
    QuestionPayload,
    SessionData,
    SessionRecord,
    SessionStart,
    SessionStats,
    StepResponse,
    StepResult,
)

# --- Generation ---
from intake_engine.models.generation import GenerationResult, ReflectionOutput, Usage

__all__ = [
    # Questions
    "OPTION_VALUE_PATTERN",
    "BaseQuestion",
    "FreeTextQuestion",
    "MultiSelectQuestion",
    "Option",
    "Question",
    "SingleSelectQuestion",
    "question_mapper",
    # Intake
    "IntakeDefinition",
    # Reflection
    "GeneratePlan",
    "PromptContext",
    "ReflectionPlan",
    "SelectionPredicate",
    "SkipPlan",
    "TemplatePlan",
    "TemplateRule",
    # Answers
    "ValidAnswer",
    # Session
    "CompleteStep",
    "CompletionOutput",
    "ContactInfo",
    "CurrentStep",
    "IntakeOverview",
    "NextStep",
    "OptionPayload",
    "ProgressEntry",
    "QuestionPayload",
    "SessionData",
    "SessionRecord",
    "SessionStart",
    "SessionStats",
    "StepResponse",
    "StepResult",
    # Generation
    "GenerationResult",
    "ReflectionOutput",
    "Usage",
]
