"""Sandbox tutorial routes."""

from fastapi import APIRouter, Response, status

from app.api.deps import EngineDep
from app.core.errors import NotFoundError
from app.schemas.sandbox import (
    CreateSandboxSessionRequest,
    SandboxEnvironment,
    SandboxSession,
    Tutorial,
    TutorialStepResult,
    ValidateTutorialStepRequest,
)

router = APIRouter(prefix="/sandbox", tags=["sandbox"])


@router.get("/environments", response_model=list[SandboxEnvironment])
async def list_environments(engine: EngineDep) -> list[SandboxEnvironment]:
    return list(engine.environments.values())


@router.get("/tutorials", response_model=list[Tutorial])
async def list_tutorials(engine: EngineDep, category: str | None = None) -> list[Tutorial]:
    if category:
        return engine.get_tutorials_by_category(category)
    return list(engine.tutorials.values())


@router.get("/tutorials/{tutorial_id}", response_model=Tutorial)
async def get_tutorial(tutorial_id: str, engine: EngineDep) -> Tutorial:
    tutorial = engine.get_tutorial(tutorial_id)
    if tutorial is None:
        raise NotFoundError(f"Tutorial {tutorial_id} not found")
    return tutorial


@router.post("/sessions", response_model=SandboxSession, status_code=status.HTTP_201_CREATED)
async def create_session(data: CreateSandboxSessionRequest, engine: EngineDep) -> SandboxSession:
    """Open a sandbox session; a live one for the same environment is ended first."""
    return await engine.create_session(
        data.user_id,
        data.environment_id,
        tutorial_id=data.tutorial_id,
        session_type=data.session_type,
    )


@router.get("/sessions/active", response_model=SandboxSession | None)
async def get_active_session(
    user_id: str,
    engine: EngineDep,
    environment_id: str | None = None,
) -> SandboxSession | None:
    return await engine.get_active_session(user_id, environment_id)


@router.get("/sessions/{session_id}", response_model=SandboxSession)
async def get_session(session_id: str, engine: EngineDep) -> SandboxSession:
    session = await engine.get_session(session_id)
    if session is None:
        raise NotFoundError(f"Sandbox session {session_id} not found")
    return session


@router.post("/sessions/{session_id}/validate", response_model=TutorialStepResult)
async def validate_step(
    session_id: str,
    data: ValidateTutorialStepRequest,
    engine: EngineDep,
) -> TutorialStepResult:
    return await engine.validate_step(session_id, data.step_id, data.user_input)


@router.post("/sessions/{session_id}/end", status_code=status.HTTP_204_NO_CONTENT)
async def end_session(session_id: str, engine: EngineDep) -> Response:
    await engine.end_session(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
