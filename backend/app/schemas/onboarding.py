"""Onboarding path, step, session and step-result schemas."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Discriminator, Field, Tag

from app.schemas.milestone import Milestone


class StepType(str, Enum):
    """Kind of work a step asks for."""

    TUTORIAL = "tutorial"
    EXERCISE = "exercise"
    SETUP = "setup"
    VALIDATION = "validation"
    MILESTONE = "milestone"


class SessionType(str, Enum):
    """Who the onboarding session is for."""

    INDIVIDUAL = "individual"
    TEAM_ADMIN = "team_admin"
    TEAM_MEMBER = "team_member"


class SessionStatus(str, Enum):
    """Session lifecycle: active <-> paused -> completed (terminal)."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class StepResultStatus(str, Enum):
    """Outcome of one step submission."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


# ============================================================================
# Interactive elements
# ============================================================================


class InputRules(BaseModel):
    min_length: int | None = None


class CodeRules(BaseModel):
    expected_output: str | None = None


class ChoiceOption(BaseModel):
    value: str
    label: str | None = None


class _ElementBase(BaseModel):
    id: str
    label: str | None = None
    required: bool = False

    @property
    def display_name(self) -> str:
        return self.label or self.id


class InputElement(_ElementBase):
    """Free-text input."""

    type: Literal["input"] = "input"
    validation: InputRules = Field(default_factory=InputRules)


class ChoiceElement(_ElementBase):
    """Single choice among fixed options."""

    type: Literal["choice"] = "choice"
    options: list[ChoiceOption] = Field(default_factory=list)


class CodeElement(_ElementBase):
    """Code editor; any non-blank submission earns credit."""

    type: Literal["code"] = "code"
    validation: CodeRules = Field(default_factory=CodeRules)


class OpaqueElement(_ElementBase):
    """Any element kind the validator has no specific checks for."""

    type: str
    config: dict[str, Any] = Field(default_factory=dict)


_KNOWN_ELEMENT_TYPES = {"input", "choice", "code"}


def _element_tag(value: Any) -> str:
    element_type = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return element_type if element_type in _KNOWN_ELEMENT_TYPES else "opaque"


InteractiveElement = Annotated[
    Annotated[InputElement, Tag("input")]
    | Annotated[ChoiceElement, Tag("choice")]
    | Annotated[CodeElement, Tag("code")]
    | Annotated[OpaqueElement, Tag("opaque")],
    Discriminator(_element_tag),
]


# ============================================================================
# Paths and steps
# ============================================================================


class SuccessCriteria(BaseModel):
    """Declarative pass conditions evaluated on top of element scoring."""

    required_actions: list[str] = Field(default_factory=list)
    minimum_score: int | None = None


class OnboardingStep(BaseModel):
    """One unit of onboarding work. Immutable at runtime."""

    id: str
    path_id: str | None = None
    title: str
    description: str | None = None
    step_type: StepType
    step_order: int = 0
    estimated_time: int = 0  # minutes
    is_required: bool = True
    dependencies: list[str] = Field(default_factory=list)
    content: dict[str, Any] = Field(default_factory=dict)
    interactive_elements: list[InteractiveElement] = Field(default_factory=list)
    success_criteria: SuccessCriteria = Field(default_factory=SuccessCriteria)

    model_config = {"frozen": True}


class OnboardingPath(BaseModel):
    """Ordered template of steps a session traverses."""

    id: str
    name: str
    description: str | None = None
    target_role: str
    subscription_tier: str | None = None
    estimated_duration: int = 0  # minutes
    is_active: bool = True
    prerequisites: list[str] = Field(default_factory=list)
    learning_objectives: list[str] = Field(default_factory=list)
    steps: list[OnboardingStep] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def ordered_steps(self) -> list[OnboardingStep]:
        return sorted(self.steps, key=lambda s: s.step_order)

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def step_at(self, index: int) -> OnboardingStep | None:
        steps = self.ordered_steps
        if 0 <= index < len(steps):
            return steps[index]
        return None


class OnboardingContext(BaseModel):
    """Who is being onboarded, used to pick a path and a session type."""

    user_id: str
    organization_id: str | None = None
    user_role: str | None = None
    subscription_tier: str | None = None
    preferences: dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Sessions and results
# ============================================================================


class StepFeedback(BaseModel):
    score: int | None = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    comment: str | None = None


class StepResult(BaseModel):
    """Recorded outcome of one step submission. Never mutated once recorded."""

    step_id: str
    status: StepResultStatus
    time_spent: float = 0.0  # seconds
    user_actions: dict[str, Any] = Field(default_factory=dict)
    feedback: StepFeedback = Field(default_factory=StepFeedback)
    attempts: int = 1
    recorded_at: datetime | None = None


class OnboardingSession(BaseModel):
    """One user's traversal of one path."""

    id: str
    user_id: str
    organization_id: str | None = None
    path_id: str
    session_type: SessionType = SessionType.INDIVIDUAL
    status: SessionStatus = SessionStatus.ACTIVE
    current_step_id: str | None = None
    current_step_index: int = 0
    furthest_step_index: int = 0
    progress_percentage: int = 0
    time_spent: float = 0.0  # seconds
    started_at: datetime
    last_active_at: datetime
    completed_at: datetime | None = None
    paused_at: datetime | None = None
    completed_step_ids: list[str] = Field(default_factory=list)
    skipped_step_ids: list[str] = Field(default_factory=list)
    earned_milestones: list[Milestone] = Field(default_factory=list)
    session_metadata: dict[str, Any] = Field(default_factory=dict)
    preferences: dict[str, Any] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class ValidationResult(BaseModel):
    """Verdict of the step validator. Returned as data, never raised."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    score: int = 0


class CompletionSummary(BaseModel):
    session_id: str
    completed_steps: list[str]
    skipped_steps: list[str]
    total_time_spent: float
    final_score: int | None
    achievements: list[Milestone] = Field(default_factory=list)


class TransitionResult(BaseModel):
    """What a complete/skip command produced."""

    accepted: bool
    session: OnboardingSession
    validation: ValidationResult | None = None
    step_result: StepResult | None = None
    next_step: OnboardingStep | None = None
    is_path_complete: bool = False
    completion: CompletionSummary | None = None
    newly_earned: list[Milestone] = Field(default_factory=list)


class OnboardingProgress(BaseModel):
    """Read model of a session's cumulative progress."""

    session_id: str
    current_step_index: int
    completed_steps: list[str]
    skipped_steps: list[str]
    milestones: list[Milestone]
    overall_progress: int
    time_spent: float
    last_updated: datetime


# ============================================================================
# API payloads
# ============================================================================


class StartOnboardingRequest(BaseModel):
    user_id: str
    organization_id: str | None = None
    user_role: str | None = None
    subscription_tier: str | None = None
    preferences: dict[str, Any] = Field(default_factory=dict)


class CompleteStepRequest(BaseModel):
    inputs: dict[str, Any] = Field(default_factory=dict)
    time_spent: float = 0.0


class SkipStepRequest(BaseModel):
    time_spent: float = 0.0
    reason: str | None = None


class NavigateRequest(BaseModel):
    target_index: int
