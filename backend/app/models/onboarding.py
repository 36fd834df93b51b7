"""Onboarding persistence models."""

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class OnboardingPathRecord(Base):
    """Onboarding path template."""

    __tablename__ = "onboarding_paths"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text)
    target_role: Mapped[str] = mapped_column(String, index=True)
    subscription_tier: Mapped[str | None] = mapped_column(String)
    estimated_duration: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    prerequisites: Mapped[list] = mapped_column(JSON, default=list)
    learning_objectives: Mapped[list] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    steps: Mapped[list["OnboardingStepRecord"]] = relationship(
        back_populates="path",
        order_by="OnboardingStepRecord.step_order",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class OnboardingStepRecord(Base):
    """One step of a path."""

    __tablename__ = "onboarding_steps"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    path_id: Mapped[str] = mapped_column(ForeignKey("onboarding_paths.id"))
    title: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text)
    step_type: Mapped[str] = mapped_column(String)  # tutorial | exercise | setup | validation | milestone
    step_order: Mapped[int] = mapped_column(Integer, default=0)
    estimated_time: Mapped[int] = mapped_column(Integer, default=0)
    is_required: Mapped[bool] = mapped_column(Boolean, default=True)
    dependencies: Mapped[list] = mapped_column(JSON, default=list)
    content: Mapped[dict] = mapped_column(JSON, default=dict)
    interactive_elements: Mapped[list] = mapped_column(JSON, default=list)
    success_criteria: Mapped[dict] = mapped_column(JSON, default=dict)

    path: Mapped[OnboardingPathRecord] = relationship(back_populates="steps")


class OnboardingSessionRecord(Base):
    """A user's traversal of a path."""

    __tablename__ = "onboarding_sessions"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    organization_id: Mapped[str | None] = mapped_column(String)
    path_id: Mapped[str] = mapped_column(ForeignKey("onboarding_paths.id"))
    session_type: Mapped[str] = mapped_column(String, default="individual")
    status: Mapped[str] = mapped_column(String, default="active")  # active | paused | completed

    # Pointer and progress
    current_step_id: Mapped[str | None] = mapped_column(String)
    current_step_index: Mapped[int] = mapped_column(Integer, default=0)
    furthest_step_index: Mapped[int] = mapped_column(Integer, default=0)
    progress_percentage: Mapped[int] = mapped_column(Integer, default=0)
    time_spent: Mapped[float] = mapped_column(Float, default=0.0)
    completed_step_ids: Mapped[list] = mapped_column(JSON, default=list)
    skipped_step_ids: Mapped[list] = mapped_column(JSON, default=list)
    earned_milestones: Mapped[list] = mapped_column(JSON, default=list)

    # Timestamps
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    last_active_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    paused_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    session_metadata: Mapped[dict] = mapped_column(JSON, default=dict)
    preferences: Mapped[dict] = mapped_column(JSON, default=dict)


class UserProgressRecord(Base):
    """Append-only history of step submissions."""

    __tablename__ = "user_progress"

    id: Mapped[int] = mapped_column(primary_key=True)
    session_id: Mapped[str] = mapped_column(ForeignKey("onboarding_sessions.id"), index=True)
    step_id: Mapped[str] = mapped_column(String)
    user_id: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String)  # completed | failed | skipped
    time_spent: Mapped[float] = mapped_column(Float, default=0.0)
    attempts: Mapped[int] = mapped_column(Integer, default=1)
    score: Mapped[int | None] = mapped_column(Integer)
    feedback: Mapped[dict] = mapped_column(JSON, default=dict)
    user_actions: Mapped[dict] = mapped_column(JSON, default=dict)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class UserAchievementRecord(Base):
    """Milestone earned within a session."""

    __tablename__ = "user_achievements"
    __table_args__ = (UniqueConstraint("session_id", "milestone_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String)
    session_id: Mapped[str] = mapped_column(ForeignKey("onboarding_sessions.id"))
    milestone_id: Mapped[str] = mapped_column(String)
    points: Mapped[int] = mapped_column(Integer, default=0)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
