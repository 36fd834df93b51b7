"""Shared test fixtures."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import app.models  # noqa: F401
from app.core.database import Base
from app.schemas.onboarding import OnboardingContext, OnboardingPath
from app.services.onboarding_repository import InMemoryOnboardingRepository

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def two_step_path() -> OnboardingPath:
    """A required tutorial followed by an optional exercise."""
    return OnboardingPath.model_validate(
        {
            "id": "path-two",
            "name": "Two Steps",
            "target_role": "developer",
            "steps": [
                {
                    "id": "step-1",
                    "title": "Intro",
                    "step_type": "tutorial",
                    "step_order": 1,
                    "estimated_time": 5,
                },
                {
                    "id": "step-2",
                    "title": "Practice",
                    "step_type": "exercise",
                    "step_order": 2,
                    "estimated_time": 10,
                    "is_required": False,
                    "interactive_elements": [
                        {"id": "answer", "type": "input", "required": True}
                    ],
                },
            ],
        }
    )


@pytest.fixture
def three_step_path() -> OnboardingPath:
    return OnboardingPath.model_validate(
        {
            "id": "path-three",
            "name": "Three Steps",
            "target_role": "admin",
            "steps": [
                {"id": "a", "title": "A", "step_type": "tutorial", "step_order": 1, "estimated_time": 3},
                {"id": "b", "title": "B", "step_type": "tutorial", "step_order": 2, "estimated_time": 4},
                {"id": "c", "title": "C", "step_type": "tutorial", "step_order": 3, "estimated_time": 5},
            ],
        }
    )


@pytest.fixture
def repo(two_step_path, three_step_path) -> InMemoryOnboardingRepository:
    return InMemoryOnboardingRepository([two_step_path, three_step_path])


@pytest.fixture
def context() -> OnboardingContext:
    return OnboardingContext(user_id="user-1", user_role="developer")
