"""Service layer modules."""

from app.services import (
    milestone_evaluator,
    onboarding_repository,
    onboarding_service,
    sandbox_service,
    step_validator,
    wizard_controller,
)

__all__ = [
    "milestone_evaluator",
    "onboarding_repository",
    "onboarding_service",
    "sandbox_service",
    "step_validator",
    "wizard_controller",
]
