"""Wizard controller.

Drives one user's onboarding session on behalf of a presentation layer.
Commands return a ``CommandResult`` and push ``WizardEvent``s onto a queue the
UI drains; no callbacks are involved.

Faults from the state machine are caught here and reported as failed results
so the UI can offer a retry. Nothing is retried automatically.
"""

from collections import deque
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

from app.core.errors import (
    InitializationError,
    OnboardingError,
    PersistenceError,
)
from app.core.logging import bind_session_context, clear_session_context, get_logger
from app.schemas.milestone import Milestone
from app.schemas.onboarding import (
    CompletionSummary,
    OnboardingContext,
    OnboardingPath,
    OnboardingSession,
    OnboardingStep,
    StepResult,
    StepResultStatus,
    TransitionResult,
    ValidationResult,
)
from app.schemas.wizard import (
    CommandResult,
    ExitReport,
    WizardEvent,
    WizardEventType,
    WizardView,
)
from app.services import onboarding_service
from app.services.milestone_evaluator import (
    build_session_progress,
    find_next_milestone,
    summarize_milestones,
)
from app.services.onboarding_repository import OnboardingRepository
from app.services.seed_data import DEFAULT_MILESTONES
from app.services.step_validator import validate_step

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class WizardController:
    """One user's wizard over one onboarding session."""

    def __init__(
        self,
        repo: OnboardingRepository,
        catalog: Sequence[Milestone] = DEFAULT_MILESTONES,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repo = repo
        self.catalog = list(catalog)
        self.now = now
        self.session: OnboardingSession | None = None
        self.path: OnboardingPath | None = None
        self.completion: CompletionSummary | None = None
        self.attempts: dict[str, int] = {}
        self._events: deque[WizardEvent] = deque()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _emit(self, event_type: WizardEventType, **payload: Any) -> None:
        self._events.append(
            WizardEvent(
                type=event_type,
                session_id=self.session.id if self.session else None,
                payload=payload,
                occurred_at=self.now(),
            )
        )

    def drain_events(self) -> list[WizardEvent]:
        events = list(self._events)
        self._events.clear()
        return events

    def _fail(self, error: OnboardingError) -> CommandResult:
        retryable = isinstance(error, (InitializationError, PersistenceError))
        logger.warning(
            "Wizard command failed",
            error_type=type(error).__name__,
            error=str(error),
            retryable=retryable,
        )
        self._emit(WizardEventType.ERROR, message=str(error), retryable=retryable)
        return CommandResult(ok=False, error=str(error), retryable=retryable, view=self.view())

    def _not_started(self) -> CommandResult:
        return CommandResult(ok=False, error="Onboarding has not been started")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, context: OnboardingContext) -> CommandResult:
        try:
            session = await onboarding_service.initialize_onboarding(
                self.repo, context.user_id, context, now=self.now()
            )
            path = await onboarding_service.load_path(self.repo, session)
        except OnboardingError as e:
            return self._fail(e)

        self._attach(session, path)
        return CommandResult(ok=True, view=self.view())

    async def load(self, session_id: str) -> CommandResult:
        """Attach to an existing session, e.g. to continue a paused one."""
        try:
            session = await onboarding_service.load_session(self.repo, session_id)
            path = await onboarding_service.load_path(self.repo, session)
        except OnboardingError as e:
            return self._fail(e)

        self._attach(session, path)
        return CommandResult(ok=True, view=self.view())

    def _attach(self, session: OnboardingSession, path: OnboardingPath) -> None:
        self.session = session
        self.path = path
        self.completion = None
        self.attempts = {}
        clear_session_context()
        bind_session_context(session_id=session.id, user_id=session.user_id)

    # ------------------------------------------------------------------
    # Step commands
    # ------------------------------------------------------------------

    def validate_inputs(self, inputs: dict[str, Any]) -> ValidationResult | None:
        """Real-time feedback for the current step; records nothing."""
        step = self.current_step
        if step is None:
            return None
        return validate_step(step, inputs)

    async def complete_step(
        self, inputs: dict[str, Any], time_spent: float = 0.0
    ) -> CommandResult:
        if self.session is None:
            return self._not_started()
        step = self.current_step
        if step is None:
            return CommandResult(ok=False, error="No current step", view=self.view())

        revisit = step.id in self.session.completed_step_ids
        attempts = self.attempts.get(step.id, 0) + 1
        self.attempts[step.id] = attempts
        result = StepResult(
            step_id=step.id,
            status=StepResultStatus.COMPLETED,
            time_spent=time_spent,
            user_actions=dict(inputs),
            attempts=attempts,
        )
        try:
            transition = await onboarding_service.complete_step(
                self.repo, self.session, step, result, catalog=self.catalog, now=self.now()
            )
        except OnboardingError as e:
            return self._fail(e)

        if transition.accepted:
            if not revisit:
                self._emit(
                    WizardEventType.STEP_COMPLETED,
                    step_id=step.id,
                    score=transition.validation.score if transition.validation else None,
                    attempts=attempts,
                )
            self._apply(transition)
        return CommandResult(ok=True, transition=transition, view=self.view())

    async def skip_step(self, time_spent: float = 0.0, reason: str | None = None) -> CommandResult:
        if self.session is None:
            return self._not_started()
        step = self.current_step
        if step is None:
            return CommandResult(ok=False, error="No current step", view=self.view())

        try:
            transition = await onboarding_service.skip_step(
                self.repo,
                self.session,
                step,
                time_spent=time_spent,
                reason=reason,
                catalog=self.catalog,
                now=self.now(),
            )
        except OnboardingError as e:
            return self._fail(e)

        self._emit(WizardEventType.STEP_SKIPPED, step_id=step.id, reason=reason)
        self._apply(transition)
        return CommandResult(ok=True, transition=transition, view=self.view())

    def _apply(self, transition: TransitionResult) -> None:
        self.session = transition.session
        for milestone in transition.newly_earned:
            self._emit(
                WizardEventType.MILESTONE_EARNED,
                milestone_id=milestone.id,
                points=milestone.reward.points,
            )
        if transition.completion is not None:
            self.completion = transition.completion
            self._emit(
                WizardEventType.ONBOARDING_COMPLETED,
                completion=transition.completion.model_dump(mode="json"),
            )

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def navigate(self, index: int) -> CommandResult:
        if self.session is None or self.path is None:
            return self._not_started()
        try:
            self.session = onboarding_service.navigate(self.session, self.path, index)
        except OnboardingError as e:
            return self._fail(e)
        return CommandResult(ok=True, view=self.view())

    def previous(self) -> CommandResult:
        if self.session is None:
            return self._not_started()
        return self.navigate(self.session.current_step_index - 1)

    def next(self) -> CommandResult:
        if self.session is None:
            return self._not_started()
        return self.navigate(self.session.current_step_index + 1)

    # ------------------------------------------------------------------
    # Pause / resume / exit
    # ------------------------------------------------------------------

    async def pause(self) -> CommandResult:
        if self.session is None:
            return self._not_started()
        try:
            self.session = await onboarding_service.pause(self.repo, self.session, now=self.now())
        except OnboardingError as e:
            return self._fail(e)
        return CommandResult(ok=True, view=self.view())

    async def resume(self) -> CommandResult:
        if self.session is None:
            return self._not_started()
        try:
            self.session = await onboarding_service.resume(self.repo, self.session, now=self.now())
        except OnboardingError as e:
            return self._fail(e)
        return CommandResult(ok=True, view=self.view())

    async def exit(self) -> CommandResult:
        """Leave the wizard, pausing the session so it can be resumed later.

        The exit event is emitted even when pausing fails; ``can_resume`` then
        reports False.
        """
        if self.session is None:
            return self._not_started()

        error: OnboardingError | None = None
        try:
            self.session = await onboarding_service.pause(self.repo, self.session, now=self.now())
        except OnboardingError as e:
            error = e

        report = ExitReport(
            session_id=self.session.id,
            current_step_index=self.session.current_step_index,
            progress_percentage=self.session.progress_percentage,
            time_spent=self.session.time_spent,
            can_resume=error is None,
        )
        self._emit(WizardEventType.ONBOARDING_EXITED, **report.model_dump())
        if error is not None:
            failed = self._fail(error)
            return failed.model_copy(update={"exit_report": report})
        clear_session_context()
        return CommandResult(ok=True, view=self.view(), exit_report=report)

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    @property
    def current_step(self) -> OnboardingStep | None:
        if self.session is None or self.path is None:
            return None
        return self.path.step_at(self.session.current_step_index)

    def view(self) -> WizardView | None:
        if self.session is None or self.path is None:
            return None

        session, path = self.session, self.path
        index = session.current_step_index
        total = path.total_steps
        next_milestone = find_next_milestone(
            build_session_progress(session, path),
            self.catalog,
            {m.id for m in session.earned_milestones},
        )
        step = self.current_step
        return WizardView(
            session_id=session.id,
            status=session.status,
            current_step=step,
            current_step_index=index,
            total_steps=total,
            progress_percentage=session.progress_percentage,
            time_remaining=onboarding_service.estimate_time_remaining(path, index),
            earned_milestones=list(session.earned_milestones),
            next_milestone=next_milestone,
            milestone_summary=summarize_milestones(session.earned_milestones, len(self.catalog)),
            can_go_back=index > 0,
            can_go_next=index < min(session.furthest_step_index, total - 1),
            is_last_step=index == total - 1,
            attempts=self.attempts.get(step.id, 0) if step else 0,
            completion=self.completion,
        )
