"""Tests for milestone_evaluator."""

from datetime import UTC, datetime

import pytest

from app.schemas.milestone import Milestone, SessionProgress
from app.schemas.onboarding import (
    OnboardingSession,
    SessionStatus,
    StepFeedback,
    StepResult,
    StepResultStatus,
)
from app.services.milestone_evaluator import (
    build_session_progress,
    evaluate_milestones,
    find_next_milestone,
    is_milestone_met,
    summarize_milestones,
)
from app.services.seed_data import DEFAULT_MILESTONES

NOW = datetime(2026, 1, 5, 9, 0, tzinfo=UTC)


def _by_id(milestone_id: str) -> Milestone:
    return next(m for m in DEFAULT_MILESTONES if m.id == milestone_id)


def _progress(**overrides) -> SessionProgress:
    data = {"total_steps": 4}
    data.update(overrides)
    return SessionProgress(**data)


def test_nothing_earned_at_start() -> None:
    evaluation = evaluate_milestones(_progress(), DEFAULT_MILESTONES, now=NOW)

    assert evaluation.newly_earned == []
    assert evaluation.earned == []
    assert evaluation.next is not None
    assert evaluation.next.id == "first-steps"
    assert evaluation.next.progress == 0


def test_first_step_earns_first_steps() -> None:
    progress = _progress(steps_completed=1, progress_percentage=25)
    evaluation = evaluate_milestones(progress, DEFAULT_MILESTONES, now=NOW)

    assert [m.id for m in evaluation.newly_earned] == ["first-steps"]
    assert evaluation.newly_earned[0].earned_at == NOW
    assert evaluation.next.id == "halfway"
    assert evaluation.next.progress == 50


def test_earned_milestones_are_kept_and_not_re_stamped() -> None:
    first = evaluate_milestones(_progress(steps_completed=1), DEFAULT_MILESTONES, now=NOW)
    later = datetime(2026, 1, 6, tzinfo=UTC)

    second = evaluate_milestones(
        _progress(steps_completed=2, progress_percentage=50),
        DEFAULT_MILESTONES,
        earned=first.earned,
        now=later,
    )

    assert [m.id for m in second.earned] == ["first-steps", "halfway"]
    assert second.earned[0].earned_at == NOW
    assert [m.id for m in second.newly_earned] == ["halfway"]


def test_earned_set_never_shrinks_when_progress_regresses() -> None:
    first = evaluate_milestones(
        _progress(steps_completed=2, progress_percentage=50), DEFAULT_MILESTONES, now=NOW
    )
    again = evaluate_milestones(_progress(), DEFAULT_MILESTONES, earned=first.earned, now=NOW)

    assert {m.id for m in first.earned} <= {m.id for m in again.earned}


def test_graduate_requires_every_required_step() -> None:
    graduate = _by_id("graduate")

    assert not is_milestone_met(graduate, _progress(progress_percentage=100))
    assert is_milestone_met(
        graduate, _progress(progress_percentage=100, all_required_steps_complete=True)
    )


@pytest.mark.parametrize(
    ("minutes", "complete", "expected"),
    [(20, True, True), (45, True, False), (20, False, False)],
)
def test_speed_runner(minutes, complete, expected) -> None:
    progress = _progress(time_spent_minutes=minutes, is_complete=complete)
    assert is_milestone_met(_by_id("speed-runner"), progress) is expected


def test_score_and_flag_milestones() -> None:
    assert is_milestone_met(_by_id("high-scorer"), _progress(average_score=95))
    assert not is_milestone_met(_by_id("high-scorer"), _progress())
    assert is_milestone_met(_by_id("first-agent"), _progress(flags={"agent_created": True}))
    assert not is_milestone_met(_by_id("first-agent"), _progress(flags={}))


def test_next_skips_non_progress_milestones() -> None:
    earned_ids = {"first-steps", "halfway", "graduate"}
    assert find_next_milestone(_progress(), DEFAULT_MILESTONES, earned_ids) is None


def test_build_session_progress(two_step_path) -> None:
    session = OnboardingSession(
        id="s1",
        user_id="u",
        path_id=two_step_path.id,
        status=SessionStatus.COMPLETED,
        progress_percentage=100,
        time_spent=600,
        completed_step_ids=["step-1"],
        skipped_step_ids=["step-2"],
        started_at=NOW,
        last_active_at=NOW,
    )
    results = [
        StepResult(
            step_id="step-1",
            status=StepResultStatus.COMPLETED,
            user_actions={"agent_created": True, "empty": ""},
            feedback=StepFeedback(score=80),
        ),
        StepResult(step_id="step-2", status=StepResultStatus.SKIPPED),
    ]

    progress = build_session_progress(session, two_step_path, results)

    assert progress.steps_completed == 1
    assert progress.steps_skipped == 1
    assert progress.time_spent_minutes == 10
    assert progress.average_score == 80
    assert progress.is_complete is True
    assert progress.all_required_steps_complete is True
    assert progress.flags == {"agent_created": True}


def test_summary() -> None:
    evaluation = evaluate_milestones(
        _progress(steps_completed=2, progress_percentage=50), DEFAULT_MILESTONES, now=NOW
    )
    summary = summarize_milestones(evaluation.earned, len(DEFAULT_MILESTONES))

    assert summary.earned_count == 2
    assert summary.total_points == 30
    assert summary.percent_complete == 33


def test_summary_rounds_half_up() -> None:
    summary = summarize_milestones([_by_id("first-steps")], 8)
    assert summary.percent_complete == 13
