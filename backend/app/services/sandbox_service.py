"""Sandbox tutorial engine.

Scripted walkthroughs inside a practice environment. Each session follows one
tutorial step by step; a wrong answer returns feedback and leaves the session
untouched. There is no scoring and no milestone tracking here.

Sessions live in an injected ``SandboxSessionStore``. Expiry is checked lazily
whenever a session is looked up.
"""

import uuid
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from app.core.config import Settings, get_settings
from app.core.errors import NotFoundError, StateError
from app.core.logging import get_logger
from app.schemas.sandbox import (
    ContainsRule,
    MinLengthRule,
    SandboxEnvironment,
    SandboxSession,
    Tutorial,
    TutorialAction,
    TutorialStep,
    TutorialStepResult,
    TutorialValidationRule,
)
from app.services.seed_data import DEFAULT_ENVIRONMENTS, DEFAULT_TUTORIALS

logger = get_logger(__name__)


class SandboxSessionStore(Protocol):
    async def get(self, session_id: str) -> SandboxSession | None: ...

    async def put(self, session: SandboxSession) -> None: ...

    async def delete(self, session_id: str) -> None: ...

    async def list(self) -> list[SandboxSession]: ...


class InMemorySandboxSessionStore:
    """Process-local store; sessions are lost on restart."""

    def __init__(self) -> None:
        self._sessions: dict[str, SandboxSession] = {}

    async def get(self, session_id: str) -> SandboxSession | None:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def put(self, session: SandboxSession) -> None:
        self._sessions[session.id] = session.model_copy(deep=True)

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def list(self) -> list[SandboxSession]:
        return [s.model_copy(deep=True) for s in self._sessions.values()]

    def clear(self) -> None:
        self._sessions.clear()


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ============================================================================
# Step checks
# ============================================================================


def apply_rule(rule: TutorialValidationRule, user_input: Any) -> bool:
    if not isinstance(user_input, str):
        return False
    if isinstance(rule, ContainsRule):
        return rule.substring in user_input
    if isinstance(rule, MinLengthRule):
        return len(user_input) >= rule.min_length
    return False


def check_step(step: TutorialStep, user_input: Any) -> tuple[bool, str]:
    """Decide whether ``user_input`` satisfies a tutorial step.

    Returns:
        (is_valid, feedback message)
    """
    if step.action in (TutorialAction.CLICK, TutorialAction.NAVIGATE):
        if step.target is not None and user_input == step.target:
            return True, "Great! You clicked the right element."
        return False, step.error_message or "Please click the highlighted element"

    if step.action == TutorialAction.INPUT:
        if step.expected_value is not None:
            # Exact and case-sensitive
            if user_input == step.expected_value:
                return True, "Correct input!"
            return False, step.error_message or "Invalid input"
        if step.validation is not None:
            if apply_rule(step.validation, user_input):
                return True, "Validation passed!"
            return False, step.error_message or "Validation failed"
        if user_input:
            return True, "Input received!"
        return False, step.error_message or "Input required"

    if step.action == TutorialAction.VALIDATE:
        if step.validation is None or apply_rule(step.validation, user_input):
            return True, "Validation passed!"
        return False, step.error_message or "Validation failed"

    return True, "Step completed"


# ============================================================================
# Engine
# ============================================================================


class TutorialEngine:
    """Runs sandbox sessions against a fixed catalog of environments and tutorials.

    At most one live session exists per (user, environment). Creating another
    ends the previous one, unless ``SANDBOX_REJECT_CONCURRENT_SESSIONS`` is set,
    in which case creation is refused.
    """

    def __init__(
        self,
        store: SandboxSessionStore | None = None,
        environments: Iterable[SandboxEnvironment] = DEFAULT_ENVIRONMENTS,
        tutorials: Iterable[Tutorial] = DEFAULT_TUTORIALS,
        now: Callable[[], datetime] = _utcnow,
        settings: Settings | None = None,
    ) -> None:
        self.store = store if store is not None else InMemorySandboxSessionStore()
        self.environments = {e.id: e for e in environments}
        self.tutorials = {t.id: t for t in tutorials}
        self.now = now
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def get_environment(self, environment_id: str) -> SandboxEnvironment | None:
        return self.environments.get(environment_id)

    def get_tutorial(self, tutorial_id: str) -> Tutorial | None:
        return self.tutorials.get(tutorial_id)

    def get_tutorials_by_category(self, category: str) -> list[Tutorial]:
        return [t for t in self.tutorials.values() if t.category == category]

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(
        self,
        user_id: str,
        environment_id: str,
        tutorial_id: str | None = None,
        session_type: str = "tutorial",
    ) -> SandboxSession:
        """Open a session in an environment.

        Raises:
            NotFoundError: Unknown environment or tutorial.
            StateError: A live session exists and concurrent sessions are rejected.
        """
        environment = self.environments.get(environment_id)
        if environment is None:
            raise NotFoundError(f"Environment {environment_id} not found")

        tutorial_id = tutorial_id or environment.default_tutorial_id
        if tutorial_id is not None and tutorial_id not in self.tutorials:
            raise NotFoundError(f"Tutorial {tutorial_id} not found")

        existing = await self.get_active_session(user_id, environment_id)
        if existing is not None:
            if self.settings.SANDBOX_REJECT_CONCURRENT_SESSIONS:
                raise StateError(
                    f"User {user_id} already has an active session in {environment_id}"
                )
            logger.info(
                "Superseding sandbox session",
                session_id=existing.id,
                user_id=user_id,
                environment_id=environment_id,
            )
            await self.end_session(existing.id)

        now = self.now()
        time_limit = environment.time_limit or self.settings.SANDBOX_DEFAULT_TIME_LIMIT_SECONDS
        session = SandboxSession(
            id=f"sandbox_{uuid.uuid4().hex}",
            user_id=user_id,
            environment_id=environment_id,
            tutorial_id=tutorial_id,
            session_type=session_type,
            state={"started_at": now.isoformat()},
            created_at=now,
            expires_at=now + timedelta(seconds=time_limit),
        )
        await self.store.put(session)
        logger.info(
            "Sandbox session created",
            session_id=session.id,
            user_id=user_id,
            environment_id=environment_id,
            tutorial_id=tutorial_id,
        )
        return session

    async def get_session(self, session_id: str) -> SandboxSession | None:
        return await self.store.get(session_id)

    async def get_active_session(
        self, user_id: str, environment_id: str | None = None
    ) -> SandboxSession | None:
        """Live session for a user. Sessions past ``expires_at`` are dropped from the store."""
        now = self.now()
        found = None
        for session in await self.store.list():
            if session.expires_at <= now:
                await self.store.delete(session.id)
                continue
            if session.user_id != user_id:
                continue
            if environment_id is not None and session.environment_id != environment_id:
                continue
            if found is None and session.is_active:
                found = session
        return found

    async def validate_step(
        self, session_id: str, step_id: str, user_input: Any
    ) -> TutorialStepResult:
        """Check one tutorial step and advance the session on a match.

        Lookup failures and wrong answers come back as ``is_valid=False`` with
        feedback; only a match changes the stored session.
        """
        session = await self.store.get(session_id)
        if session is None:
            return TutorialStepResult(is_valid=False, feedback="Session not found")
        if not session.is_live(self.now()):
            return TutorialStepResult(is_valid=False, feedback="Session is no longer active")

        tutorial = self.tutorials.get(session.tutorial_id) if session.tutorial_id else None
        if tutorial is None:
            return TutorialStepResult(is_valid=False, feedback="Tutorial not found")

        index = tutorial.step_index(step_id)
        if index is None:
            return TutorialStepResult(is_valid=False, feedback="Step not found")

        is_valid, feedback = check_step(tutorial.steps[index], user_input)
        if not is_valid:
            logger.debug("Tutorial step rejected", session_id=session_id, step_id=step_id)
            return TutorialStepResult(is_valid=False, feedback=feedback)

        completed = list(session.completed_steps)
        if step_id not in completed:
            completed.append(step_id)
        updated = session.model_copy(
            update={
                "completed_steps": completed,
                "current_step_index": max(session.current_step_index, index + 1),
            }
        )
        await self.store.put(updated)

        next_step = tutorial.steps[index + 1].id if index + 1 < len(tutorial.steps) else None
        logger.info(
            "Tutorial step completed",
            session_id=session_id,
            step_id=step_id,
            next_step=next_step,
        )
        return TutorialStepResult(is_valid=True, feedback=feedback, next_step=next_step)

    async def record_error(self, session_id: str, message: str) -> None:
        """Append to the session's error log without touching its progress."""
        session = await self.store.get(session_id)
        if session is None:
            raise NotFoundError(f"Sandbox session {session_id} not found")
        await self.store.put(session.model_copy(update={"errors": [*session.errors, message]}))

    async def end_session(self, session_id: str) -> None:
        """Deactivate a session. Ending an unknown or ended session does nothing."""
        session = await self.store.get(session_id)
        if session is None or not session.is_active:
            return

        updates: dict[str, Any] = {"is_active": False}
        environment = self.environments.get(session.environment_id)
        if environment is not None and environment.reset_on_exit:
            updates["state"] = {}
        await self.store.put(session.model_copy(update=updates))
        logger.info(
            "Sandbox session ended",
            session_id=session_id,
            reset=bool(environment and environment.reset_on_exit),
        )

    async def clear_all_sessions(self) -> None:
        for session in await self.store.list():
            await self.store.delete(session.id)
