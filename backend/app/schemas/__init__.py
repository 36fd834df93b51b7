"""Pydantic schemas."""

from app.schemas.milestone import (
    Milestone,
    MilestoneEvaluation,
    MilestoneSummary,
    MilestoneType,
    SessionProgress,
)
from app.schemas.onboarding import (
    CompletionSummary,
    InteractiveElement,
    OnboardingContext,
    OnboardingPath,
    OnboardingProgress,
    OnboardingSession,
    OnboardingStep,
    SessionStatus,
    SessionType,
    StepResult,
    StepResultStatus,
    StepType,
    TransitionResult,
    ValidationResult,
)
from app.schemas.sandbox import (
    SandboxEnvironment,
    SandboxSession,
    Tutorial,
    TutorialStep,
    TutorialStepResult,
)
from app.schemas.wizard import CommandResult, WizardEvent, WizardEventType, WizardView

__all__ = [
    "Milestone",
    "MilestoneEvaluation",
    "MilestoneSummary",
    "MilestoneType",
    "SessionProgress",
    "CompletionSummary",
    "InteractiveElement",
    "OnboardingContext",
    "OnboardingPath",
    "OnboardingProgress",
    "OnboardingSession",
    "OnboardingStep",
    "SessionStatus",
    "SessionType",
    "StepResult",
    "StepResultStatus",
    "StepType",
    "TransitionResult",
    "ValidationResult",
    "SandboxEnvironment",
    "SandboxSession",
    "Tutorial",
    "TutorialStep",
    "TutorialStepResult",
    "CommandResult",
    "WizardEvent",
    "WizardEventType",
    "WizardView",
]
