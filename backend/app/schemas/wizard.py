"""Wizard controller read models, command results and events."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from app.schemas.milestone import Milestone, MilestoneSummary
from app.schemas.onboarding import (
    CompletionSummary,
    OnboardingStep,
    SessionStatus,
    TransitionResult,
)


class WizardEventType(str, Enum):
    STEP_COMPLETED = "step_completed"
    STEP_SKIPPED = "step_skipped"
    MILESTONE_EARNED = "milestone_earned"
    ONBOARDING_COMPLETED = "onboarding_completed"
    ONBOARDING_EXITED = "onboarding_exited"
    ERROR = "error"


class WizardEvent(BaseModel):
    type: WizardEventType
    session_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime


class WizardView(BaseModel):
    """Everything the presentation layer needs to draw the wizard."""

    session_id: str
    status: SessionStatus
    current_step: OnboardingStep | None
    current_step_index: int
    total_steps: int
    progress_percentage: int
    time_remaining: int  # minutes
    earned_milestones: list[Milestone]
    next_milestone: Milestone | None
    milestone_summary: MilestoneSummary
    can_go_back: bool
    can_go_next: bool
    is_last_step: bool
    attempts: int = 0
    completion: CompletionSummary | None = None


class ExitReport(BaseModel):
    session_id: str
    current_step_index: int
    progress_percentage: int
    time_spent: float
    can_resume: bool


class CommandResult(BaseModel):
    """Outcome of one wizard command.

    ``ok`` is False only for faults and rejected commands; a submission that
    fails validation is still ``ok`` with ``transition.accepted`` False.
    """

    ok: bool
    error: str | None = None
    retryable: bool = False
    transition: TransitionResult | None = None
    view: WizardView | None = None
    exit_report: ExitReport | None = None
