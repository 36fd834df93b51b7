"""Milestone evaluation.

Milestones are derived from session progress rather than stored on their own.
Once earned a milestone is stamped with ``earned_at`` and never evaluated
again, so the earned list only grows.
"""

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from app.schemas.milestone import (
    FlagsCriteria,
    Milestone,
    MilestoneEvaluation,
    MilestoneSummary,
    ProgressCriteria,
    ScoreCriteria,
    SessionProgress,
    StepsCompletedCriteria,
    TimeLimitCriteria,
)
from app.schemas.onboarding import (
    OnboardingPath,
    OnboardingSession,
    SessionStatus,
    StepResult,
    StepResultStatus,
)
from app.services.step_validator import round_half_up

# ============================================================================
# Progress snapshot
# ============================================================================


def build_session_progress(
    session: OnboardingSession,
    path: OnboardingPath,
    results: Iterable[StepResult] = (),
) -> SessionProgress:
    """Collapse a session and its step history into the metrics milestones use."""
    completed = [r for r in results if r.status == StepResultStatus.COMPLETED]
    scores = [r.feedback.score for r in completed if r.feedback.score is not None]

    flags: dict[str, object] = {}
    for result in completed:
        for key, value in result.user_actions.items():
            if value:
                flags[key] = value

    required_ids = {s.id for s in path.steps if s.is_required}
    return SessionProgress(
        total_steps=path.total_steps,
        steps_completed=len(session.completed_step_ids),
        steps_skipped=len(session.skipped_step_ids),
        progress_percentage=session.progress_percentage,
        time_spent_minutes=session.time_spent / 60,
        average_score=sum(scores) / len(scores) if scores else None,
        is_complete=session.status == SessionStatus.COMPLETED,
        all_required_steps_complete=required_ids.issubset(session.completed_step_ids),
        flags=flags,
    )


# ============================================================================
# Predicates
# ============================================================================


def is_milestone_met(milestone: Milestone, progress: SessionProgress) -> bool:
    """Check a milestone's criteria against current progress."""
    criteria = milestone.criteria
    if isinstance(criteria, StepsCompletedCriteria):
        return progress.steps_completed >= criteria.steps_completed
    if isinstance(criteria, ProgressCriteria):
        if criteria.all_required_steps and not progress.all_required_steps_complete:
            return False
        return progress.progress_percentage >= criteria.progress_percentage
    if isinstance(criteria, TimeLimitCriteria):
        if criteria.completion_required and not progress.is_complete:
            return False
        return progress.time_spent_minutes <= criteria.max_time_minutes
    if isinstance(criteria, ScoreCriteria):
        return progress.average_score is not None and progress.average_score >= criteria.minimum_score
    if isinstance(criteria, FlagsCriteria):
        return all(progress.flags.get(flag) for flag in criteria.flags)
    return False


def _threshold(milestone: Milestone, progress: SessionProgress) -> float | None:
    """Threshold as a percentage of the path, for milestones that track progress.

    Time limits, scores and flags have no forward-moving metric and are never
    offered as the next milestone.
    """
    criteria = milestone.criteria
    if isinstance(criteria, StepsCompletedCriteria):
        if progress.total_steps <= 0:
            return None
        return criteria.steps_completed / progress.total_steps * 100
    if isinstance(criteria, ProgressCriteria):
        return float(criteria.progress_percentage)
    return None


def milestone_progress(milestone: Milestone, progress: SessionProgress) -> float:
    """Proximity to a progress-tracking milestone, capped at 100."""
    criteria = milestone.criteria
    if isinstance(criteria, StepsCompletedCriteria):
        current, target = progress.steps_completed, criteria.steps_completed
    elif isinstance(criteria, ProgressCriteria):
        current, target = progress.progress_percentage, criteria.progress_percentage
    else:
        return 0.0
    if target <= 0:
        return 100.0
    return min(100.0, current / target * 100)


def find_next_milestone(
    progress: SessionProgress,
    catalog: Sequence[Milestone],
    earned_ids: set[str],
) -> Milestone | None:
    candidates = []
    for position, milestone in enumerate(catalog):
        if milestone.id in earned_ids:
            continue
        threshold = _threshold(milestone, progress)
        if threshold is not None:
            candidates.append((threshold, position, milestone))
    if not candidates:
        return None

    _, _, milestone = min(candidates, key=lambda c: (c[0], c[1]))
    return milestone.model_copy(update={"progress": milestone_progress(milestone, progress)})


# ============================================================================
# Evaluation
# ============================================================================


def evaluate_milestones(
    progress: SessionProgress,
    catalog: Sequence[Milestone],
    earned: Sequence[Milestone] = (),
    now: datetime | None = None,
) -> MilestoneEvaluation:
    """Evaluate the catalog against progress.

    Args:
        progress: Cumulative session progress
        catalog: Every milestone that can be earned
        earned: Milestones already earned (kept as-is, never re-checked)
        now: Timestamp stamped on newly earned milestones

    Returns:
        All earned milestones (previous first), the newly earned subset and
        the next unearned progress milestone with its proximity.
    """
    stamp = now or datetime.now(UTC)
    earned_ids = {m.id for m in earned}

    newly_earned = [
        milestone.model_copy(update={"earned_at": stamp, "progress": None})
        for milestone in catalog
        if milestone.id not in earned_ids and is_milestone_met(milestone, progress)
    ]
    earned_ids.update(m.id for m in newly_earned)

    return MilestoneEvaluation(
        earned=[*earned, *newly_earned],
        newly_earned=newly_earned,
        next=find_next_milestone(progress, catalog, earned_ids),
    )


def summarize_milestones(
    earned: Sequence[Milestone], catalog_size: int | None = None
) -> MilestoneSummary:
    """Fold earned milestones into display totals. Recomputed on demand."""
    total = catalog_size if catalog_size is not None else len(earned)
    percent = round_half_up(len(earned) / total * 100) if total > 0 else 0
    return MilestoneSummary(
        earned_count=len(earned),
        total_points=sum(m.reward.points for m in earned),
        percent_complete=min(percent, 100),
    )
