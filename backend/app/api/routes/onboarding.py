"""Onboarding routes."""

from fastapi import APIRouter, status

from app.api.deps import RepoDep
from app.core.errors import NotFoundError
from app.schemas.milestone import Milestone
from app.schemas.onboarding import (
    CompleteStepRequest,
    NavigateRequest,
    OnboardingContext,
    OnboardingPath,
    OnboardingProgress,
    OnboardingSession,
    OnboardingStep,
    SkipStepRequest,
    StartOnboardingRequest,
    StepResult,
    StepResultStatus,
    TransitionResult,
    ValidationResult,
)
from app.services import onboarding_service
from app.services.onboarding_repository import OnboardingRepository
from app.services.seed_data import DEFAULT_MILESTONES
from app.services.step_validator import validate_step

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


def _find_step(path: OnboardingPath, step_id: str) -> OnboardingStep:
    for step in path.steps:
        if step.id == step_id:
            return step
    raise NotFoundError(f"Step {step_id} not found in path {path.id}")


async def _load_path(repo: OnboardingRepository, path_id: str) -> OnboardingPath:
    path = await repo.get_onboarding_path(path_id)
    if path is None:
        raise NotFoundError(f"Onboarding path {path_id} not found")
    return path


@router.get("/milestones", response_model=list[Milestone])
async def list_milestones() -> list[Milestone]:
    """Milestone catalog."""
    return DEFAULT_MILESTONES


@router.get("/paths", response_model=list[OnboardingPath])
async def list_paths(
    repo: RepoDep,
    user_role: str | None = None,
    subscription_tier: str | None = None,
) -> list[OnboardingPath]:
    """Active paths available to a role and subscription tier."""
    return await onboarding_service.list_available_paths(repo, user_role, subscription_tier)


@router.get("/users/{user_id}/sessions", response_model=list[OnboardingSession])
async def list_user_sessions(user_id: str, repo: RepoDep) -> list[OnboardingSession]:
    """A user's sessions, newest first."""
    return await onboarding_service.list_user_sessions(repo, user_id)


@router.get("/paths/{path_id}", response_model=OnboardingPath)
async def get_path(path_id: str, repo: RepoDep) -> OnboardingPath:
    return await _load_path(repo, path_id)


@router.post("/paths/{path_id}/steps/{step_id}/validate", response_model=ValidationResult)
async def validate_step_inputs(
    path_id: str,
    step_id: str,
    data: CompleteStepRequest,
    repo: RepoDep,
) -> ValidationResult:
    """Real-time feedback on step inputs. Nothing is recorded."""
    path = await _load_path(repo, path_id)
    return validate_step(_find_step(path, step_id), data.inputs)


@router.post("/sessions", response_model=OnboardingSession, status_code=status.HTTP_201_CREATED)
async def start_onboarding(data: StartOnboardingRequest, repo: RepoDep) -> OnboardingSession:
    """Start onboarding on the path matching the user's role and tier."""
    context = OnboardingContext(**data.model_dump())
    return await onboarding_service.initialize_onboarding(repo, data.user_id, context)


@router.get("/sessions/{session_id}", response_model=OnboardingSession)
async def get_session(session_id: str, repo: RepoDep) -> OnboardingSession:
    return await onboarding_service.load_session(repo, session_id)


@router.get("/sessions/{session_id}/progress", response_model=OnboardingProgress)
async def get_progress(session_id: str, repo: RepoDep) -> OnboardingProgress:
    return await onboarding_service.get_session_progress(repo, session_id)


@router.get("/sessions/{session_id}/results", response_model=list[StepResult])
async def list_results(session_id: str, repo: RepoDep) -> list[StepResult]:
    """Step submission history in recording order."""
    await onboarding_service.load_session(repo, session_id)
    return await repo.list_step_results(session_id)


@router.post("/sessions/{session_id}/steps/{step_id}/complete", response_model=TransitionResult)
async def complete_step(
    session_id: str,
    step_id: str,
    data: CompleteStepRequest,
    repo: RepoDep,
) -> TransitionResult:
    session = await onboarding_service.load_session(repo, session_id)
    path = await onboarding_service.load_path(repo, session)
    result = StepResult(
        step_id=step_id,
        status=StepResultStatus.COMPLETED,
        time_spent=data.time_spent,
        user_actions=data.inputs,
    )
    return await onboarding_service.complete_step(repo, session, _find_step(path, step_id), result)


@router.post("/sessions/{session_id}/steps/{step_id}/skip", response_model=TransitionResult)
async def skip_step(
    session_id: str,
    step_id: str,
    data: SkipStepRequest,
    repo: RepoDep,
) -> TransitionResult:
    session = await onboarding_service.load_session(repo, session_id)
    path = await onboarding_service.load_path(repo, session)
    return await onboarding_service.skip_step(
        repo,
        session,
        _find_step(path, step_id),
        time_spent=data.time_spent,
        reason=data.reason,
    )


@router.post("/sessions/{session_id}/navigate", response_model=OnboardingSession)
async def navigate(session_id: str, data: NavigateRequest, repo: RepoDep) -> OnboardingSession:
    """Move back (or forward again) among steps already reached."""
    session = await onboarding_service.load_session(repo, session_id)
    path = await onboarding_service.load_path(repo, session)
    moved = onboarding_service.navigate(session, path, data.target_index)
    return await onboarding_service.save_session(repo, moved)


@router.post("/sessions/{session_id}/pause", response_model=OnboardingSession)
async def pause_session(session_id: str, repo: RepoDep) -> OnboardingSession:
    session = await onboarding_service.load_session(repo, session_id)
    return await onboarding_service.pause(repo, session)


@router.post("/sessions/{session_id}/resume", response_model=OnboardingSession)
async def resume_session(session_id: str, repo: RepoDep) -> OnboardingSession:
    session = await onboarding_service.load_session(repo, session_id)
    return await onboarding_service.resume(repo, session)
