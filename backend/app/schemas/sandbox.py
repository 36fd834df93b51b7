"""Sandbox tutorial schemas."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class TutorialAction(str, Enum):
    CLICK = "click"
    INPUT = "input"
    NAVIGATE = "navigate"
    WAIT = "wait"
    VALIDATE = "validate"


class ContainsRule(BaseModel):
    kind: Literal["contains"] = "contains"
    substring: str


class MinLengthRule(BaseModel):
    kind: Literal["min_length"] = "min_length"
    min_length: int


TutorialValidationRule = Annotated[ContainsRule | MinLengthRule, Field(discriminator="kind")]


class TutorialStep(BaseModel):
    id: str
    title: str
    description: str = ""
    action: TutorialAction
    target: str | None = None
    expected_value: str | None = None
    validation: TutorialValidationRule | None = None
    hints: list[str] = Field(default_factory=list)
    error_message: str | None = None


class Tutorial(BaseModel):
    id: str
    title: str
    description: str = ""
    category: Literal["authentication", "organization", "features", "advanced"]
    difficulty: Literal["beginner", "intermediate", "advanced"] = "beginner"
    estimated_time: int = 0  # minutes
    prerequisites: list[str] = Field(default_factory=list)
    steps: list[TutorialStep]
    completion_criteria: list[str] = Field(default_factory=list)

    def step_index(self, step_id: str) -> int | None:
        for index, step in enumerate(self.steps):
            if step.id == step_id:
                return index
        return None


class SandboxEnvironment(BaseModel):
    id: str
    name: str
    description: str = ""
    features: list[str] = Field(default_factory=list)
    reset_on_exit: bool = False
    time_limit: int | None = None  # seconds
    default_tutorial_id: str | None = None


class SandboxSession(BaseModel):
    """One user's scripted walkthrough inside one environment."""

    id: str
    user_id: str
    environment_id: str
    tutorial_id: str | None = None
    session_type: Literal["tutorial", "practice", "demo"] = "tutorial"
    current_step_index: int = 0
    completed_steps: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    state: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    expires_at: datetime
    is_active: bool = True

    def is_live(self, now: datetime) -> bool:
        return self.is_active and self.expires_at > now


class TutorialStepResult(BaseModel):
    is_valid: bool
    feedback: str
    next_step: str | None = None


class CreateSandboxSessionRequest(BaseModel):
    user_id: str
    environment_id: str
    tutorial_id: str | None = None
    session_type: Literal["tutorial", "practice", "demo"] = "tutorial"


class ValidateTutorialStepRequest(BaseModel):
    step_id: str
    user_input: Any = None
