import pytest
import yaml

from intake_engine.engine import StepProcessor
from intake_engine.pipeline import IntakePipeline
from intake_engine.registry import QuestionRegistry

from helpers.generator import ScriptedGenerator
from helpers.store import InMemoryTranscriptStore

# Three-step intake: free text, templated multi-select, free text.
SCENARIO_INTAKE = {
    "id": "scenario",
    "name": "Scenario intake",
    "description": "Short intake used across the engine tests.",
    "questions": [
        {
            "id": "q1_feelings",
            "order": 1,
            "question_type": "free_text",
            "prompt": "How have you been feeling lately?",
            "examples": ["A bit flat.", "Restless."],
            "clinical_intention": "Opens the conversation.",
        },
        {
            "id": "q2_areas",
            "order": 2,
            "question_type": "multi_select",
            "prompt": "Which areas feel most affected?",
            "options": [
                {"value": "work", "label": "Work or career"},
                {"value": "relationships", "label": "Relationships"},
                {"value": "stress", "label": "Stress or overwhelm"},
                {"value": "mood", "label": "Mood or motivation"},
                {"value": "other", "label": "Something else", "is_escape_option": True},
            ],
        },
        {
            "id": "q3_patterns",
            "order": 3,
            "question_type": "free_text",
            "prompt": "When this shows up, what tends to happen?",
        },
    ],
    "reflection_templates": {
        "q2_areas": [
            {"when": [{"op": "count_ge", "value": 3}], "response": "That is a lot to carry at once."},
            {
                "when": [{"op": "contains_all", "value": ["work", "stress"]}],
                "response": "Work and stress often feed each other.",
            },
            {"response": "Thank you for naming what feels affected."},
        ],
    },
}

# Two-step intake ending in a skipped single-select.
CLOSING_INTAKE = {
    "id": "closing",
    "name": "Closing intake",
    "questions": [
        {
            "id": "c1_hopes",
            "order": 1,
            "question_type": "free_text",
            "prompt": "What would you hope might be different?",
        },
        {
            "id": "c2_readiness",
            "order": 2,
            "question_type": "single_select",
            "prompt": "Where are you right now?",
            "options": [
                {"value": "just_exploring", "label": "Just exploring"},
                {"value": "ready", "label": "Ready to try"},
            ],
        },
    ],
    "skip_reflection": {"c2_readiness": "Thank you for sharing where you're at."},
}

SCENARIO_ANSWERS = ["I feel anxious", ["work", "stress"], "I overthink"]


def write_intake(directory, intake: dict, name: str | None = None):
    path = directory / f"{name or intake['id']}.yaml"
    path.write_text(yaml.safe_dump(intake, sort_keys=False), encoding="utf-8")
    return path


@pytest.fixture(scope="session")
def intake_dir(tmp_path_factory):
    d = tmp_path_factory.mktemp("intakes")
    write_intake(d, SCENARIO_INTAKE)
    write_intake(d, CLOSING_INTAKE)
    return d


@pytest.fixture(scope="session")
def registry(intake_dir):
    """Registry with the scenario and closing intakes, loaded once."""
    r = QuestionRegistry(intake_dir=intake_dir)
    r.load()
    return r


@pytest.fixture(scope="session")
def bundled_registry():
    """Registry over the intakes shipped with the package."""
    r = QuestionRegistry()
    r.load()
    return r


@pytest.fixture
def store():
    return InMemoryTranscriptStore()


@pytest.fixture
def generator():
    return ScriptedGenerator()


@pytest.fixture
def processor(registry, store, generator):
    return StepProcessor(registry, store, generator)


@pytest.fixture
def pipeline(registry, store, generator):
    return IntakePipeline(registry, store, generator)
