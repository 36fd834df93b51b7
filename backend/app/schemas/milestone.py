"""Milestone schemas."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class MilestoneType(str, Enum):
    PROGRESS = "progress"
    ACHIEVEMENT = "achievement"
    COMPLETION = "completion"
    TIME_BASED = "time_based"


class StepsCompletedCriteria(BaseModel):
    """Earned once this many steps have been completed."""

    kind: Literal["steps_completed"] = "steps_completed"
    steps_completed: int


class ProgressCriteria(BaseModel):
    """Earned once overall progress reaches a percentage."""

    kind: Literal["progress_percentage"] = "progress_percentage"
    progress_percentage: int
    all_required_steps: bool = False


class TimeLimitCriteria(BaseModel):
    """Earned by finishing within a time budget."""

    kind: Literal["time_limit"] = "time_limit"
    max_time_minutes: float
    completion_required: bool = True


class ScoreCriteria(BaseModel):
    """Earned once the average step score reaches a minimum."""

    kind: Literal["score"] = "score"
    minimum_score: int


class FlagsCriteria(BaseModel):
    """Earned once every flag has been reported truthy by a step."""

    kind: Literal["flags"] = "flags"
    flags: list[str]


MilestoneCriteria = Annotated[
    StepsCompletedCriteria | ProgressCriteria | TimeLimitCriteria | ScoreCriteria | FlagsCriteria,
    Field(discriminator="kind"),
]


class MilestoneReward(BaseModel):
    points: int = 0
    badge: str | None = None
    title: str | None = None


class Milestone(BaseModel):
    """An earnable achievement.

    ``earned_at`` is set once earned; ``progress`` (0-100) is only filled on the
    next unearned milestone.
    """

    id: str
    name: str
    description: str | None = None
    milestone_type: MilestoneType
    criteria: MilestoneCriteria
    reward: MilestoneReward = Field(default_factory=MilestoneReward)
    earned_at: datetime | None = None
    progress: float | None = None


class SessionProgress(BaseModel):
    """Cumulative progress a milestone predicate is evaluated against."""

    total_steps: int
    steps_completed: int = 0
    steps_skipped: int = 0
    progress_percentage: int = 0
    time_spent_minutes: float = 0.0
    average_score: float | None = None
    is_complete: bool = False
    all_required_steps_complete: bool = False
    flags: dict[str, Any] = Field(default_factory=dict)


class MilestoneEvaluation(BaseModel):
    earned: list[Milestone]
    newly_earned: list[Milestone]
    next: Milestone | None = None


class MilestoneSummary(BaseModel):
    earned_count: int
    total_points: int
    percent_complete: int
