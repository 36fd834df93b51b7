"""Onboarding session state machine.

States: active <-> paused -> completed (terminal).

Every transition is computed on a copy of the session snapshot and handed to
the repository; the copy is only returned once the repository call succeeds.
A repository failure surfaces as ``PersistenceError`` and the caller's
snapshot is left untouched, so the same command can be retried.

Time is never measured here: callers pass each step's ``time_spent`` in.
"""

import uuid
from collections.abc import Awaitable, Sequence
from datetime import UTC, datetime
from typing import TypeVar

from app.core.errors import (
    InitializationError,
    NotFoundError,
    OnboardingError,
    PersistenceError,
    StateError,
)
from app.core.logging import get_logger
from app.schemas.milestone import Milestone
from app.schemas.onboarding import (
    CompletionSummary,
    OnboardingContext,
    OnboardingPath,
    OnboardingProgress,
    OnboardingSession,
    OnboardingStep,
    SessionStatus,
    SessionType,
    StepFeedback,
    StepResult,
    StepResultStatus,
    TransitionResult,
    ValidationResult,
)
from app.services.milestone_evaluator import build_session_progress, evaluate_milestones
from app.services.onboarding_repository import OnboardingRepository
from app.services.seed_data import DEFAULT_MILESTONES
from app.services.step_validator import round_half_up, validate_step

logger = get_logger(__name__)

T = TypeVar("T")

# Wizard roles mapped onto the roles paths are authored for
ROLE_ALIASES = {
    "individual": "developer",
    "team_admin": "admin",
    "owner": "admin",
    "team_member": "member",
}

ADMIN_ROLE_MARKERS = ("admin", "owner")


# ============================================================================
# Pure helpers
# ============================================================================


def calc_progress_percentage(step_index: int, total_steps: int) -> int:
    """Percent of the path reached, clamped to [0, 100]."""
    if total_steps <= 0:
        return 0
    return max(0, min(100, round_half_up(step_index / total_steps * 100)))


def estimate_time_remaining(path: OnboardingPath, step_index: int) -> int:
    """Minutes of estimated work from ``step_index`` to the end of the path."""
    return sum(step.estimated_time for step in path.ordered_steps[max(step_index, 0) :])


def determine_session_type(context: OnboardingContext) -> SessionType:
    requested = context.preferences.get("session_type")
    if requested in {t.value for t in SessionType}:
        return SessionType(requested)
    if not context.organization_id:
        return SessionType.INDIVIDUAL

    role = (context.user_role or "").lower()
    if any(marker in role for marker in ADMIN_ROLE_MARKERS):
        return SessionType.TEAM_ADMIN
    return SessionType.TEAM_MEMBER


def latest_results(results: Sequence[StepResult]) -> list[StepResult]:
    """One result per step, in recording order; a re-submission replaces the earlier one."""
    latest: dict[str, StepResult] = {}
    for result in results:
        latest.pop(result.step_id, None)
        latest[result.step_id] = result
    return list(latest.values())


def final_score(results: Sequence[StepResult]) -> int | None:
    scores = [
        r.feedback.score
        for r in latest_results(results)
        if r.status == StepResultStatus.COMPLETED and r.feedback.score is not None
    ]
    if not scores:
        return None
    return round_half_up(sum(scores) / len(scores))


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


def _ensure_not_completed(session: OnboardingSession, action: str) -> None:
    if session.status == SessionStatus.COMPLETED:
        raise StateError(f"Cannot {action}: onboarding session {session.id} is already completed")


def _ensure_active(session: OnboardingSession, action: str) -> None:
    _ensure_not_completed(session, action)
    if session.status != SessionStatus.ACTIVE:
        raise StateError(f"Cannot {action}: onboarding session {session.id} is {session.status.value}")


def _ensure_current_step(
    session: OnboardingSession, path: OnboardingPath, step: OnboardingStep
) -> None:
    current = path.step_at(session.current_step_index)
    if current is None or current.id != step.id:
        raise StateError(
            f"Step {step.id} is not the current step of session {session.id}"
        )


async def _persist(operation: str, call: Awaitable[T]) -> T:
    """Await a repository call, surfacing any fault as PersistenceError."""
    try:
        return await call
    except OnboardingError:
        raise
    except Exception as e:
        logger.error("Onboarding persistence failed", operation=operation, error=str(e))
        raise PersistenceError(operation, str(e)) from e


# ============================================================================
# Lookups
# ============================================================================


async def resolve_path(
    repo: OnboardingRepository, context: OnboardingContext
) -> OnboardingPath | None:
    """Pick the path for a context: explicit ``path_id`` preference first, then role."""
    path_id = context.preferences.get("path_id")
    if path_id:
        return await repo.get_onboarding_path(str(path_id))

    role = ROLE_ALIASES.get(context.user_role, context.user_role) if context.user_role else None
    return await repo.find_onboarding_path(role, context.subscription_tier)


async def load_path(repo: OnboardingRepository, session: OnboardingSession) -> OnboardingPath:
    path = await _persist("get_onboarding_path", repo.get_onboarding_path(session.path_id))
    if path is None:
        raise NotFoundError(f"Onboarding path {session.path_id} not found")
    return path


async def load_session(repo: OnboardingRepository, session_id: str) -> OnboardingSession:
    session = await _persist("get_session", repo.get_session(session_id))
    if session is None:
        raise NotFoundError(f"Onboarding session {session_id} not found")
    return session


async def list_available_paths(
    repo: OnboardingRepository,
    user_role: str | None = None,
    subscription_tier: str | None = None,
) -> list[OnboardingPath]:
    """Active paths open to a role and tier, by name. No role means every role."""
    role = ROLE_ALIASES.get(user_role, user_role) if user_role else None
    return await _persist(
        "list_onboarding_paths", repo.list_onboarding_paths(role, subscription_tier)
    )


async def list_user_sessions(repo: OnboardingRepository, user_id: str) -> list[OnboardingSession]:
    """Every session a user has started, newest first, so a paused one can be found again."""
    return await _persist("list_user_sessions", repo.list_user_sessions(user_id))


async def get_session_progress(repo: OnboardingRepository, session_id: str) -> OnboardingProgress:
    session = await load_session(repo, session_id)
    return OnboardingProgress(
        session_id=session.id,
        current_step_index=session.current_step_index,
        completed_steps=list(session.completed_step_ids),
        skipped_steps=list(session.skipped_step_ids),
        milestones=list(session.earned_milestones),
        overall_progress=session.progress_percentage,
        time_spent=session.time_spent,
        last_updated=session.last_active_at,
    )


# ============================================================================
# Transitions
# ============================================================================


async def initialize_onboarding(
    repo: OnboardingRepository,
    user_id: str,
    context: OnboardingContext,
    now: datetime | None = None,
) -> OnboardingSession:
    """Create a new active session at the first step of the matching path.

    Raises:
        InitializationError: No path matches the context, the path has no
            steps, or a repository call failed. No session is left behind.
    """
    try:
        path = await resolve_path(repo, context)
    except Exception as e:
        logger.error("Onboarding path lookup failed", user_id=user_id, error=str(e))
        raise InitializationError("Failed to look up an onboarding path") from e

    if path is None:
        raise InitializationError("No suitable onboarding path found for user context")
    first_step = path.step_at(0)
    if first_step is None:
        raise InitializationError(f"Onboarding path {path.id} has no steps")

    stamp = _now(now)
    session = OnboardingSession(
        id=str(uuid.uuid4()),
        user_id=user_id,
        organization_id=context.organization_id,
        path_id=path.id,
        session_type=determine_session_type(context),
        status=SessionStatus.ACTIVE,
        current_step_id=first_step.id,
        current_step_index=0,
        furthest_step_index=0,
        progress_percentage=0,
        time_spent=0.0,
        started_at=stamp,
        last_active_at=stamp,
        session_metadata={"user_context": context.model_dump(mode="json")},
        preferences=dict(context.preferences),
    )

    try:
        stored = await repo.create_session(session)
    except Exception as e:
        logger.error("Onboarding session creation failed", user_id=user_id, error=str(e))
        raise InitializationError("Failed to create onboarding session") from e

    logger.info(
        "Onboarding initialized",
        session_id=stored.id,
        user_id=user_id,
        path_id=path.id,
        session_type=stored.session_type.value,
    )
    return stored


async def _advance(
    repo: OnboardingRepository,
    session: OnboardingSession,
    path: OnboardingPath,
    recorded: StepResult,
    *,
    validation: ValidationResult | None,
    catalog: Sequence[Milestone],
    now: datetime,
) -> TransitionResult:
    """Shared success path of complete_step and skip_step."""
    total = path.total_steps
    new_index = session.current_step_index + 1
    furthest = max(session.furthest_step_index, new_index)
    next_step = path.step_at(new_index)
    is_complete = new_index >= total

    completed_ids = [i for i in session.completed_step_ids if i != recorded.step_id]
    skipped_ids = [i for i in session.skipped_step_ids if i != recorded.step_id]
    if recorded.status == StepResultStatus.SKIPPED:
        skipped_ids.append(recorded.step_id)
    else:
        completed_ids.append(recorded.step_id)

    updates: dict[str, object] = {
        "current_step_index": new_index,
        "current_step_id": next_step.id if next_step else None,
        "furthest_step_index": furthest,
        "progress_percentage": calc_progress_percentage(furthest, total),
        "time_spent": session.time_spent + recorded.time_spent,
        "last_active_at": now,
        "completed_step_ids": completed_ids,
        "skipped_step_ids": skipped_ids,
    }
    if is_complete:
        updates["status"] = SessionStatus.COMPLETED
        updates["completed_at"] = now
    candidate = session.model_copy(update=updates)

    history = await _persist("list_step_results", repo.list_step_results(session.id))
    history = latest_results([*history, recorded])
    evaluation = evaluate_milestones(
        build_session_progress(candidate, path, history),
        catalog,
        earned=session.earned_milestones,
        now=now,
    )
    candidate = candidate.model_copy(update={"earned_milestones": evaluation.earned})

    stored = await _persist(
        "record_step_completion", repo.record_step_completion(candidate, recorded)
    )

    completion = None
    if is_complete:
        completion = CompletionSummary(
            session_id=stored.id,
            completed_steps=[s.id for s in path.ordered_steps],
            skipped_steps=list(stored.skipped_step_ids),
            total_time_spent=stored.time_spent,
            final_score=final_score(history),
            achievements=list(stored.earned_milestones),
        )

    logger.info(
        "Onboarding path completed" if is_complete else "Onboarding step recorded",
        session_id=stored.id,
        step_id=recorded.step_id,
        status=recorded.status.value,
        progress=stored.progress_percentage,
        milestones_earned=[m.id for m in evaluation.newly_earned],
    )
    return TransitionResult(
        accepted=True,
        session=stored,
        validation=validation,
        step_result=recorded,
        next_step=next_step,
        is_path_complete=is_complete,
        completion=completion,
        newly_earned=evaluation.newly_earned,
    )


async def complete_step(
    repo: OnboardingRepository,
    session: OnboardingSession,
    step: OnboardingStep,
    result: StepResult,
    *,
    catalog: Sequence[Milestone] = DEFAULT_MILESTONES,
    now: datetime | None = None,
) -> TransitionResult:
    """Validate a step submission and advance the session when it passes.

    An invalid submission returns ``accepted=False`` with the unchanged
    session and the validation feedback; attempt counting is left to the
    caller.

    Raises:
        StateError: The session is not active or ``step`` is not the current step.
        PersistenceError: The repository failed; nothing was committed.
    """
    _ensure_active(session, "complete step")
    path = await load_path(repo, session)
    _ensure_current_step(session, path, step)

    validation = validate_step(step, result.user_actions)
    if not validation.is_valid:
        logger.info(
            "Step validation failed",
            session_id=session.id,
            step_id=step.id,
            score=validation.score,
            errors=len(validation.errors),
        )
        return TransitionResult(accepted=False, session=session, validation=validation)

    stamp = _now(now)
    recorded = result.model_copy(
        update={
            "step_id": step.id,
            "status": StepResultStatus.COMPLETED,
            "feedback": StepFeedback(
                score=validation.score,
                errors=validation.errors,
                warnings=validation.warnings,
                comment=result.feedback.comment,
            ),
            "recorded_at": stamp,
        }
    )
    return await _advance(
        repo, session, path, recorded, validation=validation, catalog=catalog, now=stamp
    )


async def skip_step(
    repo: OnboardingRepository,
    session: OnboardingSession,
    step: OnboardingStep,
    *,
    time_spent: float = 0.0,
    reason: str | None = None,
    catalog: Sequence[Milestone] = DEFAULT_MILESTONES,
    now: datetime | None = None,
) -> TransitionResult:
    """Record an optional step as skipped and advance without validation.

    Raises:
        StateError: The step is required, the session is not active, or
            ``step`` is not the current step.
        PersistenceError: The repository failed; nothing was committed.
    """
    _ensure_active(session, "skip step")
    if step.is_required:
        raise StateError(f"Step {step.id} is required and cannot be skipped")
    path = await load_path(repo, session)
    _ensure_current_step(session, path, step)

    stamp = _now(now)
    recorded = StepResult(
        step_id=step.id,
        status=StepResultStatus.SKIPPED,
        time_spent=time_spent,
        user_actions={"action": "skip"},
        feedback=StepFeedback(comment=reason),
        recorded_at=stamp,
    )
    return await _advance(
        repo, session, path, recorded, validation=None, catalog=catalog, now=stamp
    )


def navigate(
    session: OnboardingSession, path: OnboardingPath, target_index: int
) -> OnboardingSession:
    """Move the step pointer within already-reached steps.

    Pure: progress, history and persistence are untouched. Moving past the
    furthest reached step only happens through complete_step/skip_step.
    """
    _ensure_not_completed(session, "navigate")
    max_index = min(session.furthest_step_index, path.total_steps - 1)
    if target_index < 0 or target_index > max_index:
        raise StateError(
            f"Cannot navigate to step {target_index}; reachable steps are 0..{max_index}"
        )

    step = path.step_at(target_index)
    return session.model_copy(
        update={"current_step_index": target_index, "current_step_id": step.id if step else None}
    )


async def save_session(repo: OnboardingRepository, session: OnboardingSession) -> OnboardingSession:
    """Persist a pointer move made with navigate()."""
    return await _persist("update_session", repo.update_session(session))


async def pause(
    repo: OnboardingRepository,
    session: OnboardingSession,
    now: datetime | None = None,
) -> OnboardingSession:
    """Pause the session and persist its pointer. Pausing twice is a no-op."""
    _ensure_not_completed(session, "pause")
    if session.status == SessionStatus.PAUSED:
        return session

    stamp = _now(now)
    candidate = session.model_copy(
        update={"status": SessionStatus.PAUSED, "paused_at": stamp, "last_active_at": stamp}
    )
    stored = await _persist("pause_session", repo.update_session(candidate))
    logger.info(
        "Onboarding paused",
        session_id=stored.id,
        step_index=stored.current_step_index,
        progress=stored.progress_percentage,
    )
    return stored


async def resume(
    repo: OnboardingRepository,
    session: OnboardingSession,
    now: datetime | None = None,
) -> OnboardingSession:
    """Return a paused session to active.

    Raises:
        StateError: The session is completed.
    """
    _ensure_not_completed(session, "resume")
    if session.status == SessionStatus.ACTIVE:
        return session

    stamp = _now(now)
    pause_duration = (stamp - session.paused_at).total_seconds() if session.paused_at else 0.0
    candidate = session.model_copy(
        update={
            "status": SessionStatus.ACTIVE,
            "paused_at": None,
            "last_active_at": stamp,
            "session_metadata": {
                **session.session_metadata,
                "resumed_at": stamp.isoformat(),
                "pause_duration": pause_duration,
            },
        }
    )
    stored = await _persist("resume_session", repo.update_session(candidate))
    logger.info("Onboarding resumed", session_id=stored.id, pause_duration=pause_duration)
    return stored
