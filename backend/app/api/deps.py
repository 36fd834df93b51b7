"""API dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.services.onboarding_repository import OnboardingRepository, SqlOnboardingRepository
from app.services.sandbox_service import TutorialEngine


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async for session in get_session():
        yield session


async def get_onboarding_repository(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> OnboardingRepository:
    return SqlOnboardingRepository(db)


def get_tutorial_engine(request: Request) -> TutorialEngine:
    """The sandbox engine is process-wide; it is created with the app."""
    return request.app.state.tutorial_engine


RepoDep = Annotated[OnboardingRepository, Depends(get_onboarding_repository)]
EngineDep = Annotated[TutorialEngine, Depends(get_tutorial_engine)]
