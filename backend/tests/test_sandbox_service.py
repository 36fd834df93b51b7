"""Tests for sandbox_service."""

from datetime import UTC, datetime, timedelta

import pytest

from app.core.config import Settings
from app.core.errors import NotFoundError, StateError
from app.schemas.sandbox import TutorialStep
from app.services.sandbox_service import InMemorySandboxSessionStore, TutorialEngine, check_step


class Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 5, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def engine(clock: Clock) -> TutorialEngine:
    return TutorialEngine(InMemorySandboxSessionStore(), now=clock, settings=Settings())


@pytest.mark.asyncio
async def test_input_step_requires_exact_expected_value(engine: TutorialEngine) -> None:
    session = await engine.create_session("user-1", "auth-tutorial")
    assert session.tutorial_id == "auth-basics"

    wrong = await engine.validate_step(session.id, "enter-email", "wrong-email")
    assert wrong.is_valid is False
    assert wrong.feedback == "Invalid input"
    assert wrong.next_step is None
    assert (await engine.get_session(session.id)).completed_steps == []

    upper = await engine.validate_step(session.id, "enter-email", "DEMO@example.com")
    assert upper.is_valid is False

    right = await engine.validate_step(session.id, "enter-email", "demo@example.com")
    assert right.is_valid is True
    assert right.feedback == "Correct input!"
    assert right.next_step == "enter-password"

    stored = await engine.get_session(session.id)
    assert stored.completed_steps == ["enter-email"]
    assert stored.current_step_index == 2


@pytest.mark.asyncio
async def test_click_step_and_last_step(engine: TutorialEngine) -> None:
    session = await engine.create_session("user-1", "auth-tutorial")

    miss = await engine.validate_step(session.id, "navigate-signin", "logo")
    assert miss.feedback == "Please click the highlighted element"

    hit = await engine.validate_step(session.id, "navigate-signin", "sign-in-button")
    assert hit.feedback == "Great! You clicked the right element."
    assert hit.next_step == "enter-email"

    last = await engine.validate_step(session.id, "submit-signin", "submit-button")
    assert last.is_valid is True
    assert last.next_step is None


@pytest.mark.asyncio
async def test_completed_step_is_recorded_once(engine: TutorialEngine) -> None:
    session = await engine.create_session("user-1", "auth-tutorial")
    for _ in range(2):
        await engine.validate_step(session.id, "navigate-signin", "sign-in-button")
    assert (await engine.get_session(session.id)).completed_steps == ["navigate-signin"]


@pytest.mark.asyncio
async def test_lookup_failures_are_reported_as_feedback(engine: TutorialEngine) -> None:
    missing = await engine.validate_step("nope", "enter-email", "x")
    assert missing.feedback == "Session not found"

    no_tutorial = await engine.create_session("user-1", "org-setup")
    result = await engine.validate_step(no_tutorial.id, "enter-email", "x")
    assert result.feedback == "Tutorial not found"

    session = await engine.create_session("user-1", "auth-tutorial")
    result = await engine.validate_step(session.id, "unknown-step", "x")
    assert result.feedback == "Step not found"


@pytest.mark.asyncio
async def test_unknown_environment(engine: TutorialEngine) -> None:
    with pytest.raises(NotFoundError):
        await engine.create_session("user-1", "moon-base")
    with pytest.raises(NotFoundError):
        await engine.create_session("user-1", "auth-tutorial", tutorial_id="nope")


@pytest.mark.asyncio
async def test_second_session_supersedes_first(engine: TutorialEngine) -> None:
    first = await engine.create_session("user-1", "auth-tutorial")
    second = await engine.create_session("user-1", "auth-tutorial")

    assert (await engine.get_session(first.id)).is_active is False
    active = await engine.get_active_session("user-1", "auth-tutorial")
    assert active.id == second.id


@pytest.mark.asyncio
async def test_sessions_in_other_environments_are_independent(engine: TutorialEngine) -> None:
    auth = await engine.create_session("user-1", "auth-tutorial")
    demo = await engine.create_session("user-1", "feature-demo")

    assert (await engine.get_active_session("user-1", "auth-tutorial")).id == auth.id
    assert (await engine.get_active_session("user-1", "feature-demo")).id == demo.id


@pytest.mark.asyncio
async def test_concurrent_sessions_can_be_rejected(clock: Clock) -> None:
    engine = TutorialEngine(now=clock, settings=Settings(SANDBOX_REJECT_CONCURRENT_SESSIONS=True))
    await engine.create_session("user-1", "auth-tutorial")
    with pytest.raises(StateError):
        await engine.create_session("user-1", "auth-tutorial")


@pytest.mark.asyncio
async def test_expired_sessions_are_not_returned(engine: TutorialEngine, clock: Clock) -> None:
    session = await engine.create_session("user-1", "auth-tutorial")
    assert session.expires_at == clock.now + timedelta(minutes=30)

    clock.advance(minutes=31)
    assert await engine.get_active_session("user-1") is None
    assert await engine.get_session(session.id) is None
    result = await engine.validate_step(session.id, "navigate-signin", "sign-in-button")
    assert result.is_valid is False


@pytest.mark.asyncio
async def test_end_session(engine: TutorialEngine) -> None:
    session = await engine.create_session("user-1", "auth-tutorial")
    await engine.end_session(session.id)

    assert await engine.get_active_session("user-1") is None
    ended = await engine.get_session(session.id)
    assert ended.is_active is False
    assert ended.state == {}

    await engine.end_session("unknown")


@pytest.mark.asyncio
async def test_record_error_keeps_progress(engine: TutorialEngine) -> None:
    session = await engine.create_session("user-1", "auth-tutorial")
    await engine.validate_step(session.id, "navigate-signin", "sign-in-button")
    await engine.record_error(session.id, "Clicked the wrong button")

    stored = await engine.get_session(session.id)
    assert stored.errors == ["Clicked the wrong button"]
    assert stored.completed_steps == ["navigate-signin"]

    with pytest.raises(NotFoundError):
        await engine.record_error("unknown", "x")


@pytest.mark.asyncio
async def test_clear_all_sessions(engine: TutorialEngine) -> None:
    await engine.create_session("user-1", "auth-tutorial")
    await engine.create_session("user-2", "auth-tutorial")
    await engine.clear_all_sessions()
    assert await engine.store.list() == []


def test_tutorial_catalog(engine: TutorialEngine) -> None:
    assert engine.get_tutorial("auth-basics").title == "Authentication Basics"
    assert engine.get_tutorial("nope") is None
    assert {t.id for t in engine.get_tutorials_by_category("authentication")} == {
        "auth-basics",
        "signup-process",
    }
    assert engine.get_tutorials_by_category("advanced") == []


@pytest.mark.parametrize(
    ("step", "user_input", "expected"),
    [
        ({"action": "input", "validation": {"kind": "contains", "substring": "@"}}, "a@b", True),
        ({"action": "input", "validation": {"kind": "min_length", "min_length": 8}}, "short", False),
        ({"action": "input"}, "", False),
        ({"action": "input"}, "anything", True),
        ({"action": "validate"}, None, True),
        ({"action": "wait"}, None, True),
        ({"action": "navigate", "target": "/dashboard"}, "/dashboard", True),
        ({"action": "click"}, None, False),
        ({"action": "navigate"}, "/dashboard", False),
    ],
)
def test_check_step(step, user_input, expected) -> None:
    tutorial_step = TutorialStep.model_validate({"id": "s", "title": "S", **step})
    is_valid, _ = check_step(tutorial_step, user_input)
    assert is_valid is expected
