"""Integration tests for the full pipeline.

Drives one trainee and their coach through the API: plan generation,
a logged session, analytics, coaching and realtime messaging.
"""

import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from fitup.config import Settings
from fitup.models.profile import UserRole
from fitup.web.app import create_app

SECRET = "integration-secret-key-that-is-long-enough"


@pytest.fixture
def client():
    with tempfile.TemporaryDirectory() as tmpdir:
        settings = Settings(
            jwt_secret=SECRET,
            database_url=f"sqlite:///{Path(tmpdir) / 'pipeline.db'}",
            frontend_url="http://testserver",
        )
        with TestClient(create_app(settings)) as test_client:
            yield test_client


@pytest.fixture
def headers(client):
    tokens = client.app.state.tokens

    def _make(user_id, role=UserRole.USER, email=None):
        return {"Authorization": f"Bearer {tokens.create_access_token(user_id, role, email)}"}

    return _make


def test_trainee_week(client, headers):
    """Generate a plan, train one day and read the analytics back."""
    trainee = headers("sam", email="sam@example.com")
    metadata = {
        "level": "intermediate",
        "goals": ["strength"],
        "equipment": ["barbell", "dumbbell", "bodyweight"],
        "frequency": 3,
        "time_per_workout": 60,
    }

    plan = client.post("/plans/generate", json={"metadata": metadata}, headers=trainee).json()
    days = [d for d in plan["metadata"]["structure"] if not d["is_rest"]]
    assert len(days) == 3

    day = days[0]
    exercise_id = day["exercises"][0]["exercise_id"]
    session = client.post("/workout-sessions/start", json={"workout_id": day["workout_id"]}, headers=trainee).json()

    sets = [{"reps": 5, "weight": 100, "rpe": 8}, {"reps": 3, "weight": 110, "rpe": 9}]
    logged = client.post(
        f"/workout-sessions/{session['id']}/log-exercise",
        json={"exercise_id": exercise_id, "sets": sets},
        headers=trainee,
    )
    assert logged.status_code == 200

    completed = client.post(f"/workout-sessions/{session['id']}/complete", json={}, headers=trainee).json()
    assert completed["session"]["status"] == "completed"
    assert completed["session"]["summary"]["total_volume"] == pytest.approx(830)

    progression = client.get(f"/analytics/strength/sam/exercise/{exercise_id}", headers=trainee)
    assert progression.status_code == 200
    assert progression.json()["data_points"] == 1

    metrics = client.get("/workout-sessions/metrics?days=7", headers=trainee).json()
    assert metrics["total_volume"] == pytest.approx(830)

    pdf = client.get(f"/plans/{plan['id']}/download", headers=trainee)
    assert pdf.content.startswith(b"%PDF")


def test_coach_and_client_chat(client, headers):
    """Invite a client, accept, then exchange messages over the socket."""
    coach = headers("coach-kim", UserRole.COACH)
    trainee = headers("sam", email="sam@example.com")

    invitation = client.post("/coach/invitations", json={"email": "sam@example.com"}, headers=coach).json()
    stored = client.portal.call(client.app.state.services.repos.invitations.get, invitation["id"])
    accepted = client.post("/invitations/accept", json={"token": stored.token}, headers=trainee)
    assert accepted.status_code == 200

    conversation = client.post(
        "/messages/conversations", json={"participant_id": "sam"}, headers=coach
    ).json()

    token = client.app.state.tokens.create_access_token("sam")
    with client.websocket_connect(f"/ws?token={token}") as websocket:
        websocket.send_json({"action": "subscribe", "channel": f"conversation:{conversation['id']}"})
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json()["type"] == "pong"

        sent = client.post(
            "/messages", json={"conversation_id": conversation["id"], "text": "Great session!"}, headers=coach
        ).json()

        event = websocket.receive_json()
        assert event["type"] == "new_message"
        assert event["message"]["id"] == sent["id"]

    read = client.post(f"/messages/conversations/{conversation['id']}/read", headers=trainee).json()
    assert read["marked"] == [sent["id"]]
