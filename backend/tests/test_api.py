"""HTTP route tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_tutorial_engine
from app.core.config import Settings
from app.main import app
from app.services.onboarding_repository import seed_paths
from app.services.sandbox_service import TutorialEngine
from app.services.seed_data import DEFAULT_PATHS


@pytest_asyncio.fixture
async def client(test_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    await seed_paths(test_session, DEFAULT_PATHS)
    engine = TutorialEngine(settings=Settings())

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_tutorial_engine] = lambda: engine
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_onboarding_flow(client: AsyncClient) -> None:
    response = await client.post(
        "/api/onboarding/sessions",
        json={"user_id": "u1", "organization_id": "org-1", "user_role": "member"},
    )
    assert response.status_code == 201
    session = response.json()
    assert session["path_id"] == "path-member"
    assert session["session_type"] == "team_member"
    sid = session["id"]

    response = await client.post(f"/api/onboarding/sessions/{sid}/steps/member-welcome/complete", json={})
    body = response.json()
    assert response.status_code == 200
    assert body["accepted"] is True
    assert body["next_step"]["id"] == "member-collaboration"
    assert body["session"]["progress_percentage"] == 33

    # Required step cannot be skipped
    response = await client.post(
        f"/api/onboarding/sessions/{sid}/steps/member-collaboration/skip", json={}
    )
    assert response.status_code == 409

    response = await client.post(f"/api/onboarding/sessions/{sid}/navigate", json={"target_index": 0})
    assert response.status_code == 200
    assert response.json()["current_step_id"] == "member-welcome"
    assert response.json()["progress_percentage"] == 33

    response = await client.post(f"/api/onboarding/sessions/{sid}/navigate", json={"target_index": 2})
    assert response.status_code == 409

    response = await client.get(f"/api/onboarding/sessions/{sid}/progress")
    assert response.json()["completed_steps"] == ["member-welcome"]

    response = await client.post(f"/api/onboarding/sessions/{sid}/pause")
    assert response.json()["status"] == "paused"
    response = await client.post(f"/api/onboarding/sessions/{sid}/resume")
    assert response.json()["status"] == "active"


@pytest.mark.asyncio
async def test_invalid_submission_returns_feedback(client: AsyncClient) -> None:
    sid = (
        await client.post(
            "/api/onboarding/sessions",
            json={"user_id": "u2", "user_role": "admin", "organization_id": "org-1"},
        )
    ).json()["id"]

    response = await client.post(
        f"/api/onboarding/sessions/{sid}/steps/admin-org-setup/complete",
        json={"inputs": {"org_name": "Acme"}},
    )
    body = response.json()
    assert response.status_code == 200
    assert body["accepted"] is False
    assert body["validation"]["errors"] == ["Template is required"]


@pytest.mark.asyncio
async def test_live_validation(client: AsyncClient) -> None:
    response = await client.post(
        "/api/onboarding/paths/path-developer/steps/dev-profile/validate",
        json={"inputs": {"full_name": "Jane", "experience_level": "expert"}},
    )
    assert response.json() == {"is_valid": True, "errors": [], "warnings": [], "score": 100}


@pytest.mark.asyncio
async def test_error_statuses(client: AsyncClient) -> None:
    assert (await client.get("/api/onboarding/sessions/missing")).status_code == 404
    assert (await client.get("/api/onboarding/paths/missing")).status_code == 404

    response = await client.post(
        "/api/onboarding/sessions", json={"user_id": "u3", "user_role": "astronaut"}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_milestone_catalog(client: AsyncClient) -> None:
    response = await client.get("/api/onboarding/milestones")
    assert "graduate" in [m["id"] for m in response.json()]


@pytest.mark.asyncio
async def test_sandbox_flow(client: AsyncClient) -> None:
    response = await client.post(
        "/api/sandbox/sessions", json={"user_id": "u1", "environment_id": "auth-tutorial"}
    )
    assert response.status_code == 201
    sid = response.json()["id"]

    response = await client.post(
        f"/api/sandbox/sessions/{sid}/validate",
        json={"step_id": "enter-email", "user_input": "wrong-email"},
    )
    assert response.json() == {"is_valid": False, "feedback": "Invalid input", "next_step": None}

    response = await client.post(
        f"/api/sandbox/sessions/{sid}/validate",
        json={"step_id": "enter-email", "user_input": "demo@example.com"},
    )
    assert response.json() == {
        "is_valid": True,
        "feedback": "Correct input!",
        "next_step": "enter-password",
    }

    response = await client.get("/api/sandbox/sessions/active", params={"user_id": "u1"})
    assert response.json()["id"] == sid

    response = await client.post(f"/api/sandbox/sessions/{sid}/end")
    assert response.status_code == 204
    response = await client.get("/api/sandbox/sessions/active", params={"user_id": "u1"})
    assert response.json() is None


@pytest.mark.asyncio
async def test_sandbox_catalog(client: AsyncClient) -> None:
    response = await client.get("/api/sandbox/tutorials", params={"category": "authentication"})
    assert len(response.json()) == 2
    assert (await client.get("/api/sandbox/tutorials/nope")).status_code == 404
    response = await client.post(
        "/api/sandbox/sessions", json={"user_id": "u1", "environment_id": "moon"}
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_paused_session_is_found_again(client: AsyncClient) -> None:
    sid = (
        await client.post("/api/onboarding/sessions", json={"user_id": "u4", "user_role": "developer"})
    ).json()["id"]
    await client.post(f"/api/onboarding/sessions/{sid}/pause")

    response = await client.get("/api/onboarding/users/u4/sessions")
    assert response.status_code == 200
    sessions = response.json()
    assert [s["id"] for s in sessions] == [sid]
    assert sessions[0]["status"] == "paused"
    assert (await client.get("/api/onboarding/users/nobody/sessions")).json() == []


@pytest.mark.asyncio
async def test_list_paths(client: AsyncClient) -> None:
    response = await client.get("/api/onboarding/paths", params={"user_role": "team_member"})
    assert [p["id"] for p in response.json()] == ["path-member"]

    response = await client.get(
        "/api/onboarding/paths",
        params={"user_role": "enterprise", "subscription_tier": "enterprise"},
    )
    assert [p["id"] for p in response.json()] == ["path-enterprise"]
