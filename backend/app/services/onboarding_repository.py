"""Persistence collaborator for onboarding sessions.

The session state machine only talks to the ``OnboardingRepository`` protocol.
Two implementations live here: an in-memory one for tests and embedding, and
a SQLAlchemy one backed by the onboarding tables.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.onboarding import (
    OnboardingPathRecord,
    OnboardingSessionRecord,
    OnboardingStepRecord,
    UserAchievementRecord,
    UserProgressRecord,
)
from app.schemas.milestone import Milestone
from app.schemas.onboarding import (
    OnboardingPath,
    OnboardingSession,
    StepFeedback,
    StepResult,
)

logger = get_logger(__name__)


class OnboardingRepository(Protocol):
    """Path reads and session writes the state machine depends on."""

    async def get_onboarding_path(self, path_id: str) -> OnboardingPath | None: ...

    async def find_onboarding_path(
        self, target_role: str | None, subscription_tier: str | None = None
    ) -> OnboardingPath | None: ...

    async def create_session(self, session: OnboardingSession) -> OnboardingSession: ...

    async def get_session(self, session_id: str) -> OnboardingSession | None: ...

    async def list_onboarding_paths(
        self, target_role: str | None = None, subscription_tier: str | None = None
    ) -> list[OnboardingPath]: ...

    async def list_user_sessions(self, user_id: str) -> list[OnboardingSession]: ...

    async def record_step_completion(
        self, session: OnboardingSession, result: StepResult
    ) -> OnboardingSession:
        """Store ``result`` in place of any earlier result for the same step."""
        ...

    async def update_session(self, session: OnboardingSession) -> OnboardingSession: ...

    async def list_step_results(self, session_id: str) -> list[StepResult]: ...


def _tier_matches(path_tier: str | None, requested: str | None) -> bool:
    return path_tier is None or path_tier == requested


# ============================================================================
# In-memory
# ============================================================================


class InMemoryOnboardingRepository:
    """Dict-backed repository. Returns copies so callers never share state."""

    def __init__(self, paths: Iterable[OnboardingPath] = ()) -> None:
        self._paths: dict[str, OnboardingPath] = {p.id: p for p in paths}
        self._sessions: dict[str, OnboardingSession] = {}
        self._results: dict[str, list[StepResult]] = {}

    def add_path(self, path: OnboardingPath) -> None:
        self._paths[path.id] = path

    async def get_onboarding_path(self, path_id: str) -> OnboardingPath | None:
        path = self._paths.get(path_id)
        if path is None or not path.is_active:
            return None
        return path

    async def list_onboarding_paths(
        self, target_role: str | None = None, subscription_tier: str | None = None
    ) -> list[OnboardingPath]:
        return sorted(
            (
                p
                for p in self._paths.values()
                if p.is_active
                and (target_role is None or p.target_role == target_role)
                and _tier_matches(p.subscription_tier, subscription_tier)
            ),
            key=lambda p: p.name,
        )

    async def find_onboarding_path(
        self, target_role: str | None, subscription_tier: str | None = None
    ) -> OnboardingPath | None:
        candidates = await self.list_onboarding_paths(target_role, subscription_tier)
        return candidates[0] if candidates else None

    async def create_session(self, session: OnboardingSession) -> OnboardingSession:
        self._sessions[session.id] = session.model_copy(deep=True)
        self._results.setdefault(session.id, [])
        return session.model_copy(deep=True)

    async def get_session(self, session_id: str) -> OnboardingSession | None:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def list_user_sessions(self, user_id: str) -> list[OnboardingSession]:
        """Newest first."""
        sessions = [s for s in self._sessions.values() if s.user_id == user_id]
        sessions.sort(key=lambda s: s.started_at, reverse=True)
        return [s.model_copy(deep=True) for s in sessions]

    async def record_step_completion(
        self, session: OnboardingSession, result: StepResult
    ) -> OnboardingSession:
        if session.id not in self._sessions:
            raise KeyError(f"Session {session.id} not found")
        results = [r for r in self._results[session.id] if r.step_id != result.step_id]
        results.append(result.model_copy(deep=True))
        self._results[session.id] = results
        self._sessions[session.id] = session.model_copy(deep=True)
        return session.model_copy(deep=True)

    async def update_session(self, session: OnboardingSession) -> OnboardingSession:
        if session.id not in self._sessions:
            raise KeyError(f"Session {session.id} not found")
        self._sessions[session.id] = session.model_copy(deep=True)
        return session.model_copy(deep=True)

    async def list_step_results(self, session_id: str) -> list[StepResult]:
        return [r.model_copy(deep=True) for r in self._results.get(session_id, [])]


# ============================================================================
# SQLAlchemy
# ============================================================================


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def path_from_record(record: OnboardingPathRecord) -> OnboardingPath:
    return OnboardingPath.model_validate(
        {
            "id": record.id,
            "name": record.name,
            "description": record.description,
            "target_role": record.target_role,
            "subscription_tier": record.subscription_tier,
            "estimated_duration": record.estimated_duration,
            "is_active": record.is_active,
            "prerequisites": record.prerequisites or [],
            "learning_objectives": record.learning_objectives or [],
            "steps": [
                {
                    "id": step.id,
                    "path_id": step.path_id,
                    "title": step.title,
                    "description": step.description,
                    "step_type": step.step_type,
                    "step_order": step.step_order,
                    "estimated_time": step.estimated_time,
                    "is_required": step.is_required,
                    "dependencies": step.dependencies or [],
                    "content": step.content or {},
                    "interactive_elements": step.interactive_elements or [],
                    "success_criteria": step.success_criteria or {},
                }
                for step in record.steps
            ],
        }
    )


def session_from_record(record: OnboardingSessionRecord) -> OnboardingSession:
    return OnboardingSession(
        id=record.id,
        user_id=record.user_id,
        organization_id=record.organization_id,
        path_id=record.path_id,
        session_type=record.session_type,
        status=record.status,
        current_step_id=record.current_step_id,
        current_step_index=record.current_step_index,
        furthest_step_index=record.furthest_step_index,
        progress_percentage=record.progress_percentage,
        time_spent=record.time_spent,
        started_at=_aware(record.started_at),
        last_active_at=_aware(record.last_active_at),
        completed_at=_aware(record.completed_at),
        paused_at=_aware(record.paused_at),
        completed_step_ids=list(record.completed_step_ids or []),
        skipped_step_ids=list(record.skipped_step_ids or []),
        earned_milestones=[Milestone.model_validate(m) for m in record.earned_milestones or []],
        session_metadata=dict(record.session_metadata or {}),
        preferences=dict(record.preferences or {}),
    )


def _apply_session(record: OnboardingSessionRecord, session: OnboardingSession) -> None:
    data = session.model_dump(mode="json")
    record.status = data["status"]
    record.session_type = data["session_type"]
    record.current_step_id = session.current_step_id
    record.current_step_index = session.current_step_index
    record.furthest_step_index = session.furthest_step_index
    record.progress_percentage = session.progress_percentage
    record.time_spent = session.time_spent
    record.last_active_at = session.last_active_at
    record.completed_at = session.completed_at
    record.paused_at = session.paused_at
    record.completed_step_ids = list(session.completed_step_ids)
    record.skipped_step_ids = list(session.skipped_step_ids)
    record.earned_milestones = data["earned_milestones"]
    record.session_metadata = data["session_metadata"]
    record.preferences = data["preferences"]


class SqlOnboardingRepository:
    """Repository over the onboarding tables.

    Note: write methods commit the transaction, so a returned session is
    durable and a raised exception leaves nothing half-written.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_onboarding_path(self, path_id: str) -> OnboardingPath | None:
        record = await self.db.get(OnboardingPathRecord, path_id)
        if not record or not record.is_active:
            return None
        return path_from_record(record)

    async def find_onboarding_path(
        self, target_role: str | None, subscription_tier: str | None = None
    ) -> OnboardingPath | None:
        stmt = select(OnboardingPathRecord).where(OnboardingPathRecord.is_active)
        if target_role is not None:
            stmt = stmt.where(OnboardingPathRecord.target_role == target_role)
        stmt = stmt.where(
            or_(
                OnboardingPathRecord.subscription_tier.is_(None),
                OnboardingPathRecord.subscription_tier == subscription_tier,
            )
        )
        result = await self.db.execute(stmt.order_by(OnboardingPathRecord.name).limit(1))
        record = result.scalar_one_or_none()
        return path_from_record(record) if record else None

    async def list_onboarding_paths(
        self, target_role: str | None = None, subscription_tier: str | None = None
    ) -> list[OnboardingPath]:
        stmt = select(OnboardingPathRecord).where(OnboardingPathRecord.is_active)
        if target_role is not None:
            stmt = stmt.where(OnboardingPathRecord.target_role == target_role)
        stmt = stmt.where(
            or_(
                OnboardingPathRecord.subscription_tier.is_(None),
                OnboardingPathRecord.subscription_tier == subscription_tier,
            )
        )
        result = await self.db.execute(stmt.order_by(OnboardingPathRecord.name))
        return [path_from_record(record) for record in result.scalars().all()]

    async def create_session(self, session: OnboardingSession) -> OnboardingSession:
        record = OnboardingSessionRecord(
            id=session.id,
            user_id=session.user_id,
            organization_id=session.organization_id,
            path_id=session.path_id,
            started_at=session.started_at,
        )
        _apply_session(record, session)
        self.db.add(record)
        await self._commit()
        logger.info("Onboarding session stored", session_id=session.id)
        return session_from_record(record)

    async def get_session(self, session_id: str) -> OnboardingSession | None:
        record = await self.db.get(OnboardingSessionRecord, session_id)
        return session_from_record(record) if record else None

    async def list_user_sessions(self, user_id: str) -> list[OnboardingSession]:
        result = await self.db.execute(
            select(OnboardingSessionRecord)
            .where(OnboardingSessionRecord.user_id == user_id)
            .order_by(OnboardingSessionRecord.started_at.desc())
        )
        return [session_from_record(record) for record in result.scalars().all()]

    async def record_step_completion(
        self, session: OnboardingSession, result: StepResult
    ) -> OnboardingSession:
        record = await self.db.get(OnboardingSessionRecord, session.id)
        if not record:
            raise ValueError(f"Session {session.id} not found")

        known = {m.get("id") for m in record.earned_milestones or []}
        for milestone in session.earned_milestones:
            if milestone.id not in known:
                self.db.add(
                    UserAchievementRecord(
                        user_id=session.user_id,
                        session_id=session.id,
                        milestone_id=milestone.id,
                        points=milestone.reward.points,
                        earned_at=milestone.earned_at,
                    )
                )

        await self.db.execute(
            delete(UserProgressRecord).where(
                UserProgressRecord.session_id == session.id,
                UserProgressRecord.step_id == result.step_id,
            )
        )
        self.db.add(
            UserProgressRecord(
                session_id=session.id,
                step_id=result.step_id,
                user_id=session.user_id,
                status=result.status.value,
                time_spent=result.time_spent,
                attempts=result.attempts,
                score=result.feedback.score,
                feedback=result.feedback.model_dump(mode="json"),
                user_actions=result.user_actions,
                recorded_at=result.recorded_at or datetime.now(UTC),
            )
        )
        _apply_session(record, session)
        await self._commit()
        return session_from_record(record)

    async def update_session(self, session: OnboardingSession) -> OnboardingSession:
        record = await self.db.get(OnboardingSessionRecord, session.id)
        if not record:
            raise ValueError(f"Session {session.id} not found")
        _apply_session(record, session)
        await self._commit()
        return session_from_record(record)

    async def list_step_results(self, session_id: str) -> list[StepResult]:
        result = await self.db.execute(
            select(UserProgressRecord)
            .where(UserProgressRecord.session_id == session_id)
            .order_by(UserProgressRecord.id)
        )
        return [
            StepResult(
                step_id=row.step_id,
                status=row.status,
                time_spent=row.time_spent,
                user_actions=row.user_actions or {},
                feedback=StepFeedback.model_validate(row.feedback or {}),
                attempts=row.attempts,
                recorded_at=_aware(row.recorded_at),
            )
            for row in result.scalars().all()
        ]

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise


async def seed_paths(db: AsyncSession, paths: Iterable[OnboardingPath]) -> int:
    """Insert paths that are not stored yet.

    Note: This function commits the transaction.
    """
    created = 0
    for path in paths:
        if await db.get(OnboardingPathRecord, path.id):
            continue
        record = OnboardingPathRecord(
            id=path.id,
            name=path.name,
            description=path.description,
            target_role=path.target_role,
            subscription_tier=path.subscription_tier,
            estimated_duration=path.estimated_duration,
            is_active=path.is_active,
            prerequisites=list(path.prerequisites),
            learning_objectives=list(path.learning_objectives),
        )
        for step in path.steps:
            data = step.model_dump(mode="json")
            record.steps.append(
                OnboardingStepRecord(
                    id=step.id,
                    title=step.title,
                    description=step.description,
                    step_type=data["step_type"],
                    step_order=step.step_order,
                    estimated_time=step.estimated_time,
                    is_required=step.is_required,
                    dependencies=list(step.dependencies),
                    content=data["content"],
                    interactive_elements=data["interactive_elements"],
                    success_criteria=data["success_criteria"],
                )
            )
        db.add(record)
        created += 1

    await db.commit()
    logger.info("Onboarding paths seeded", created=created)
    return created
