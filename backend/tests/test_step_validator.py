"""Tests for step_validator."""

import pytest

from app.schemas.onboarding import OnboardingStep
from app.services.step_validator import is_blank, round_half_up, validate_step


def _step(**overrides) -> OnboardingStep:
    data = {"id": "s", "title": "Step", "step_type": "exercise"}
    data.update(overrides)
    return OnboardingStep.model_validate(data)


@pytest.fixture
def profile_step() -> OnboardingStep:
    return _step(
        interactive_elements=[
            {"id": "input-1", "type": "input", "required": True},
            {
                "id": "choice-1",
                "type": "choice",
                "required": True,
                "options": [{"value": "option1"}, {"value": "option2"}],
            },
        ]
    )


def test_missing_required_choice_names_the_element(profile_step: OnboardingStep) -> None:
    result = validate_step(profile_step, {"input-1": "John Doe"})

    assert result.is_valid is False
    assert result.errors == ["choice-1 is required"]
    assert result.score == 50


def test_all_required_elements_score_100(profile_step: OnboardingStep) -> None:
    result = validate_step(profile_step, {"input-1": "John Doe", "choice-1": "option1"})

    assert result.is_valid is True
    assert result.errors == []
    assert result.score == 100


def test_invalid_choice_is_an_error(profile_step: OnboardingStep) -> None:
    result = validate_step(profile_step, {"input-1": "John Doe", "choice-1": "nope"})

    assert result.is_valid is False
    assert result.errors == ["Please select a valid option for choice-1"]


def test_label_is_used_in_messages() -> None:
    step = _step(
        interactive_elements=[{"id": "full_name", "type": "input", "label": "Full name", "required": True}]
    )
    assert validate_step(step, {}).errors == ["Full name is required"]


def test_input_min_length() -> None:
    step = _step(
        interactive_elements=[
            {"id": "name", "type": "input", "required": True, "validation": {"min_length": 3}}
        ]
    )

    short = validate_step(step, {"name": "Al"})
    assert short.errors == ["name must be at least 3 characters"]
    assert short.score == 0

    assert validate_step(step, {"name": "Alice"}).score == 100


@pytest.mark.parametrize("user_inputs", [{}, {"anything": "x"}, {"a": None}])
def test_tutorial_without_elements_always_passes(user_inputs) -> None:
    step = _step(step_type="tutorial")
    result = validate_step(step, user_inputs)

    assert result.is_valid is True
    assert result.score == 0


def test_code_without_expected_output_warns_and_deducts() -> None:
    step = _step(
        interactive_elements=[
            {
                "id": "code",
                "type": "code",
                "required": True,
                "validation": {"expected_output": "agent.deploy()"},
            }
        ]
    )

    result = validate_step(step, {"code": "print('hi')"})
    assert result.warnings == ["Your code might not produce the expected output"]
    assert result.errors == []
    assert result.score == 80
    assert result.is_valid is True

    assert validate_step(step, {"code": "agent.deploy()"}).score == 100


def test_opaque_elements_earn_half_credit() -> None:
    step = _step(
        interactive_elements=[
            {"id": "slider", "type": "slider", "config": {"max": 5}},
            {"id": "name", "type": "input"},
        ]
    )

    result = validate_step(step, {"slider": 3, "name": "x"})
    assert result.score == 75
    assert result.is_valid is True


def test_missing_required_action_is_an_error() -> None:
    step = _step(success_criteria={"required_actions": ["agent_created"]})

    missing = validate_step(step, {})
    assert missing.errors == ["Required action not completed: agent_created"]
    assert missing.score == 0
    assert missing.is_valid is False

    done = validate_step(step, {"agent_created": True})
    assert done.is_valid is True
    assert done.score == 100


def test_passing_floor_applies_even_with_lower_minimum_score() -> None:
    step = _step(
        interactive_elements=[
            {"id": "a", "type": "input"},
            {"id": "b", "type": "input"},
            {"id": "c", "type": "input"},
        ],
        success_criteria={"minimum_score": 10},
    )

    # 10 of 30 element points reaches 33%, above the step's own 10% minimum,
    # so the 30 point bucket is earned: (10 + 30) / 60 = 67%.
    result = validate_step(step, {"a": "x"})
    assert result.warnings == []
    assert result.score == 67
    assert result.is_valid is False


def test_minimum_score_below_threshold_is_a_warning() -> None:
    step = _step(
        interactive_elements=[{"id": "a", "type": "input"}, {"id": "b", "type": "input"}],
        success_criteria={"minimum_score": 80},
    )

    result = validate_step(step, {"a": "x"})
    assert result.errors == []
    assert result.warnings == ["Score 50% is below minimum 80%"]
    assert result.score == 20


def test_validation_is_idempotent(profile_step: OnboardingStep) -> None:
    inputs = {"input-1": "John Doe"}
    assert validate_step(profile_step, inputs) == validate_step(profile_step, inputs)


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(66.5) == 67
    assert round_half_up(49.4) == 49


@pytest.mark.parametrize("value", [None, "", [], {}, False])
def test_blank_values(value) -> None:
    assert is_blank(value)


def test_zero_is_not_blank() -> None:
    assert not is_blank(0)
