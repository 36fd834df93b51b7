"""Database models."""

from app.models.onboarding import (
    OnboardingPathRecord,
    OnboardingSessionRecord,
    OnboardingStepRecord,
    UserAchievementRecord,
    UserProgressRecord,
)

__all__ = [
    "OnboardingPathRecord",
    "OnboardingStepRecord",
    "OnboardingSessionRecord",
    "UserProgressRecord",
    "UserAchievementRecord",
]
