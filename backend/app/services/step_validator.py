"""Step validation and scoring.

Pure functions: the same step and inputs always produce the same verdict, so
the wizard can re-run them on every keystroke and again at submit time.
"""

import math
from collections.abc import Mapping
from typing import Any

from app.core.config import get_settings
from app.schemas.onboarding import (
    ChoiceElement,
    CodeElement,
    InputElement,
    OnboardingStep,
    StepType,
    SuccessCriteria,
    ValidationResult,
)

# ============================================================================
# Scoring weights
# ============================================================================

ELEMENT_POINTS = 10
OPAQUE_ELEMENT_POINTS = 5
CODE_OUTPUT_PENALTY = 2
REQUIRED_ACTION_POINTS = 20
MINIMUM_SCORE_POINTS = 30


def round_half_up(value: float) -> int:
    """Round .5 away from zero, unlike the banker's rounding of round()."""
    return int(math.floor(value + 0.5))


def is_blank(value: Any) -> bool:
    return value is None or value is False or value == "" or value == [] or value == {}


def _percentage(earned: float, possible: float) -> int:
    if possible <= 0:
        return 0
    return max(0, round_half_up(earned / possible * 100))


def score_elements(
    step: OnboardingStep, user_inputs: Mapping[str, Any]
) -> tuple[float, float, list[str], list[str]]:
    """Score every interactive element.

    Returns:
        (earned, possible, errors, warnings)
    """
    earned = 0.0
    possible = 0.0
    errors: list[str] = []
    warnings: list[str] = []

    for element in step.interactive_elements:
        possible += ELEMENT_POINTS
        value = user_inputs.get(element.id)

        if is_blank(value):
            if element.required:
                errors.append(f"{element.display_name} is required")
            continue

        if isinstance(element, InputElement):
            min_length = element.validation.min_length
            if min_length and isinstance(value, str) and len(value) < min_length:
                errors.append(f"{element.display_name} must be at least {min_length} characters")
            else:
                earned += ELEMENT_POINTS
        elif isinstance(element, ChoiceElement):
            if any(option.value == value for option in element.options):
                earned += ELEMENT_POINTS
            else:
                errors.append(f"Please select a valid option for {element.display_name}")
        elif isinstance(element, CodeElement):
            if isinstance(value, str) and value.strip():
                earned += ELEMENT_POINTS
                expected = element.validation.expected_output
                if expected and expected not in value:
                    warnings.append("Your code might not produce the expected output")
                    earned -= CODE_OUTPUT_PENALTY
        else:
            earned += OPAQUE_ELEMENT_POINTS

    return earned, possible, errors, warnings


def score_success_criteria(
    criteria: SuccessCriteria,
    user_inputs: Mapping[str, Any],
    *,
    earned: float,
    possible: float,
) -> tuple[float, float, list[str], list[str]]:
    """Score the success-criteria bucket.

    ``earned``/``possible`` are the totals accumulated so far; the minimum
    score check compares against the percentage they represent before the
    minimum-score bucket itself is added.
    """
    bucket_earned = 0.0
    bucket_possible = 0.0
    errors: list[str] = []
    warnings: list[str] = []

    for action in criteria.required_actions:
        bucket_possible += REQUIRED_ACTION_POINTS
        if user_inputs.get(action):
            bucket_earned += REQUIRED_ACTION_POINTS
        else:
            errors.append(f"Required action not completed: {action}")

    if criteria.minimum_score:
        score_so_far = _percentage(earned + bucket_earned, possible + bucket_possible)
        bucket_possible += MINIMUM_SCORE_POINTS
        if score_so_far >= criteria.minimum_score:
            bucket_earned += MINIMUM_SCORE_POINTS
        else:
            warnings.append(
                f"Score {score_so_far}% is below minimum {criteria.minimum_score}%"
            )

    return bucket_earned, bucket_possible, errors, warnings


def validate_step(step: OnboardingStep, user_inputs: Mapping[str, Any]) -> ValidationResult:
    """Evaluate a step's user inputs against its elements and success criteria.

    Tutorial steps pass as soon as there are no errors; every other step type
    also needs a score of at least ``PASSING_SCORE`` (70), regardless of the
    step's own ``minimum_score``.
    """
    earned, possible, errors, warnings = score_elements(step, user_inputs)

    criteria_earned, criteria_possible, criteria_errors, criteria_warnings = (
        score_success_criteria(
            step.success_criteria, user_inputs, earned=earned, possible=possible
        )
    )
    earned += criteria_earned
    possible += criteria_possible
    errors.extend(criteria_errors)
    warnings.extend(criteria_warnings)

    score = _percentage(earned, possible)
    passing_score = get_settings().PASSING_SCORE
    is_valid = not errors and (step.step_type == StepType.TUTORIAL or score >= passing_score)

    return ValidationResult(is_valid=is_valid, errors=errors, warnings=warnings, score=score)
