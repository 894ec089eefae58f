"""Integration tests for timer endpoints."""
import pytest


@pytest.mark.asyncio
class TestTimerEndpoints:
    """Tests for the live timer API."""

    async def test_requires_auth(self, app_client):
        """Timer commands need a bearer token."""
        response = await app_client.post("/timers/start", json={"project_id": "P1"})

        assert response.status_code == 401

    async def test_invalid_token(self, app_client):
        """Garbage tokens are rejected."""
        response = await app_client.get(
            "/timers/current",
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401

    async def test_start_pause_resume_stop(self, app_client, auth_headers, clock, registry):
        """A full session through the API."""
        clock.set(0)
        response = await app_client.post(
            "/timers/start",
            json={"project_id": "P1", "description": "Working on feature"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["is_running"] is True
        assert data["is_paused"] is False
        assert data["project_id"] == "P1"
        session_id = data["session_id"]

        clock.set(5)
        response = await app_client.post("/timers/pause", headers=auth_headers)
        assert response.json()["is_paused"] is True
        assert response.json()["elapsed_seconds"] == 5

        clock.set(20)
        response = await app_client.post("/timers/resume", headers=auth_headers)
        assert response.json()["is_paused"] is False

        clock.set(25)
        response = await app_client.post("/timers/stop", headers=auth_headers)
        assert response.status_code == 200
        entry = response.json()
        assert entry["id"] == session_id
        assert entry["duration"] == 10
        assert entry["paused_seconds"] == 15
        assert entry["end_time"] is not None

        assert len(registry) == 0

        response = await app_client.get("/timers/current", headers=auth_headers)
        assert response.json()["is_running"] is False
        assert len(registry) == 0

    async def test_start_without_project(self, app_client, auth_headers):
        """Missing project is a 400."""
        response = await app_client.post("/timers/start", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert "project_id" in response.json()["detail"]

    async def test_stop_when_idle_returns_null(self, app_client, auth_headers, gateway):
        """Stopping nothing is not an error."""
        response = await app_client.post("/timers/stop", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() is None
        assert gateway.writes() == []

    async def test_failed_stop_keeps_timer(self, app_client, auth_headers, gateway, clock):
        """A storage failure is a 503 and the timer stays up."""
        clock.set(0)
        await app_client.post("/timers/start", json={"project_id": "P1"}, headers=auth_headers)
        gateway.fail_finalize = True

        response = await app_client.post("/timers/stop", headers=auth_headers)
        assert response.status_code == 503

        response = await app_client.get("/timers/current", headers=auth_headers)
        assert response.json()["is_running"] is True

    async def test_current_entry(self, app_client, auth_headers):
        """The entry behind the timer is 404 when idle."""
        response = await app_client.get("/timers/current/entry", headers=auth_headers)
        assert response.status_code == 404

        await app_client.post(
            "/timers/start",
            json={"project_id": "P1", "tags": ["client-a"]},
            headers=auth_headers,
        )
        response = await app_client.get("/timers/current/entry", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["owner_id"] == "user123"
        assert response.json()["tags"] == ["client-a"]
        assert response.json()["end_time"] is None

    async def test_recovers_entry_from_store(self, app_client, auth_headers, gateway, clock):
        """The first request adopts an entry left by a previous process."""
        gateway.seed(
            owner_id="user123",
            project_id="P1",
            start_time=clock.at(0),
            end_time=None,
            is_paused=True,
            pause_started_at=clock.at(5),
            paused_seconds=2,
        )
        clock.set(50)

        response = await app_client.get("/timers/current", headers=auth_headers)

        data = response.json()
        assert data["is_running"] is True
        assert data["is_paused"] is True
        assert data["elapsed_seconds"] == 3
        assert data["elapsed_clock"] == "00:00:03"
