"""AnswerValidator tests — shape, vocabulary and escape-text rules per question type."""

import pytest

from intake_engine.errors import ValidationError
from intake_engine.models.question import (
    FreeTextQuestion,
    MultiSelectQuestion,
    Option,
    SingleSelectQuestion,
)
from intake_engine.validator import AnswerValidator


@pytest.fixture
def validator():
    return AnswerValidator()


@pytest.fixture
def free_text():
    return FreeTextQuestion(id="q_free", order=1, prompt="How are you?")


@pytest.fixture
def single():
    return SingleSelectQuestion(
        id="q_single",
        order=2,
        prompt="Pick one",
        options=[
            Option(value="structured", label="Structured"),
            Option(value="exploratory", label="Exploratory"),
        ],
    )


@pytest.fixture
def multi():
    return MultiSelectQuestion(
        id="q_multi",
        order=3,
        prompt="Pick any",
        options=[
            Option(value="work", label="Work or career"),
            Option(value="stress", label="Stress or overwhelm"),
            Option(value="mood", label="Mood or motivation"),
            Option(value="other", label="Something else", is_escape_option=True),
        ],
    )


# =====================================================================
# free_text
# =====================================================================


class TestFreeText:

    def test_trimmed_text_accepted(self, validator, free_text):
        answer = validator.validate(free_text, "  I feel anxious \n")
        assert answer.value == "I feel anxious", "Free text should be stored trimmed"
        assert answer.escape_text is None

    @pytest.mark.parametrize("raw", ["", "   ", "\n\t"])
    def test_blank_rejected(self, validator, free_text, raw):
        with pytest.raises(ValidationError):
            validator.validate(free_text, raw)

    @pytest.mark.parametrize("raw", [None, 3, ["I feel anxious"]])
    def test_non_string_rejected(self, validator, free_text, raw):
        with pytest.raises(ValidationError):
            validator.validate(free_text, raw)

    def test_escape_text_rejected(self, validator, free_text):
        with pytest.raises(ValidationError):
            validator.validate(free_text, "fine", escape_text="extra")


# =====================================================================
# single_select
# =====================================================================


class TestSingleSelect:

    def test_bare_string_accepted(self, validator, single):
        assert validator.validate(single, "structured").value == "structured"

    def test_one_item_list_accepted(self, validator, single):
        assert validator.validate(single, ["exploratory"]).value == "exploratory", (
            "A one-element list should normalise to the bare value"
        )

    @pytest.mark.parametrize("raw", ["", [], None])
    def test_empty_rejected(self, validator, single, raw):
        with pytest.raises(ValidationError):
            validator.validate(single, raw)

    def test_two_values_rejected(self, validator, single):
        with pytest.raises(ValidationError, match="only one"):
            validator.validate(single, ["structured", "exploratory"])

    def test_unknown_value_rejected(self, validator, single):
        with pytest.raises(ValidationError, match="Unknown option"):
            validator.validate(single, "Structured")

    def test_label_is_not_a_value(self, validator, multi):
        with pytest.raises(ValidationError):
            validator.validate(multi, ["Work or career"])


# =====================================================================
# multi_select
# =====================================================================


class TestMultiSelect:

    def test_known_values_accepted(self, validator, multi):
        answer = validator.validate(multi, ["work", "stress"])
        assert answer.value == ["work", "stress"]

    def test_duplicates_collapse_in_order(self, validator, multi):
        answer = validator.validate(multi, ["stress", "work", "stress"])
        assert answer.value == ["stress", "work"], "Duplicates collapse, first-seen order kept"

    @pytest.mark.parametrize("raw", [[], "work", None])
    def test_empty_or_wrong_shape_rejected(self, validator, multi, raw):
        with pytest.raises(ValidationError):
            validator.validate(multi, raw)

    def test_any_unknown_value_rejects_the_answer(self, validator, multi):
        with pytest.raises(ValidationError, match="nonsense"):
            validator.validate(multi, ["work", "nonsense"])


# =====================================================================
# Escape options
# =====================================================================


class TestEscapeText:

    def test_escape_selection_requires_text(self, validator, multi):
        with pytest.raises(ValidationError):
            validator.validate(multi, ["work", "other"])

    def test_escape_selection_rejects_blank_text(self, validator, multi):
        with pytest.raises(ValidationError):
            validator.validate(multi, ["other"], escape_text="   ")

    def test_escape_selection_with_text(self, validator, multi):
        answer = validator.validate(multi, ["other"], escape_text="  my sleep  ")
        assert answer.value == ["other"], "The escape value itself is stored"
        assert answer.escape_text == "my sleep", "Escape text is stored trimmed"

    def test_text_without_escape_selection_rejected(self, validator, multi):
        with pytest.raises(ValidationError):
            validator.validate(multi, ["mood"], escape_text="because")

    def test_blank_text_without_escape_selection_ignored(self, validator, multi):
        answer = validator.validate(multi, ["mood"], escape_text="")
        assert answer.escape_text is None
