"""Tests for the HTTP API and the WebSocket endpoint."""

import pytest
from starlette.websockets import WebSocketDisconnect

from fitup.models.profile import UserRole


def first_training_day(plan: dict) -> dict:
    return next(day for day in plan["metadata"]["structure"] if not day["is_rest"])


@pytest.fixture
def alice(make_headers):
    return make_headers("alice", email="alice@example.com")


@pytest.fixture
def plan(client, alice, sample_metadata):
    response = client.post("/plans/generate", json={"metadata": sample_metadata}, headers=alice)
    assert response.status_code == 201
    return response.json()


class TestBasics:
    """Tests for health, authentication and error bodies."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_missing_token(self, client):
        response = client.get("/workout-sessions/active")
        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHENTICATED"

    def test_bad_token(self, client):
        response = client.get("/workout-sessions/active", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_request_validation_is_invalid_input(self, client, alice):
        response = client.post("/workout-sessions/start", json={"workout_id": "abc"}, headers=alice)
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"

    def test_service_validation_error_body(self, client, alice, sample_metadata):
        metadata = dict(sample_metadata, frequency=9)
        response = client.post("/plans/generate", json={"metadata": metadata}, headers=alice)

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "INVALID_METADATA"
        assert body["details"]["field"] == "frequency"
        assert "error" in body

    def test_bad_one_rep_maxes_is_invalid_metadata(self, client, alice, sample_metadata):
        metadata = dict(sample_metadata, one_rep_maxes={"1": "heavy"})
        response = client.post("/plans/generate", json={"metadata": metadata}, headers=alice)

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_METADATA"
        assert response.json()["details"]["field"] == "one_rep_maxes"


class TestPlans:
    """Tests for plan routes."""

    def test_generate_and_fetch_active(self, client, alice, plan):
        response = client.get("/plans/active/alice", headers=alice)
        assert response.status_code == 200
        assert response.json()["id"] == plan["id"]
        assert response.json()["active"]

    def test_other_user_is_forbidden(self, client, make_headers, plan):
        response = client.get("/plans/active/alice", headers=make_headers("bob"))
        assert response.status_code == 403

    def test_assigned_coach_can_view(self, client, make_headers, plan):
        coach = make_headers("coach1", UserRole.COACH)
        assert client.get("/plans/active/alice", headers=coach).status_code == 403

        services = client.app.state.services
        client.portal.call(services.coaching.assign_client, "coach1", "alice")

        response = client.get("/plans/active/alice", headers=coach)
        assert response.status_code == 200
        assert response.json()["id"] == plan["id"]

    def test_performance_and_effectiveness(self, client, alice, plan):
        response = client.post(
            f"/plans/{plan['id']}/performance",
            json={"completion_rate": 0.9, "average_rpe": 7.5},
            headers=alice,
        )
        assert response.status_code == 201

        response = client.get(f"/plans/{plan['id']}/effectiveness", headers=alice)
        assert response.status_code == 200

    def test_regenerate(self, client, alice, plan, sample_metadata):
        response = client.post(f"/plans/{plan['id']}/regenerate", json={"reason": "new gym"}, headers=alice)
        assert response.status_code == 200
        assert response.json()["needs_regeneration"]

        replacement = client.post("/plans/generate", json={"metadata": sample_metadata}, headers=alice)
        assert replacement.status_code == 201
        assert replacement.json()["id"] != plan["id"]

    def test_download_pdf(self, client, alice, plan):
        response = client.get(f"/plans/{plan['id']}/download", headers=alice)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_unknown_plan(self, client, alice):
        response = client.get("/plans/9999/effectiveness", headers=alice)
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"


class TestSessions:
    """Tests for the workout session flow."""

    def test_start_log_complete(self, client, alice, plan):
        day = first_training_day(plan)
        exercise_id = day["exercises"][0]["exercise_id"]

        response = client.post("/workout-sessions/start", json={"workout_id": day["workout_id"]}, headers=alice)
        assert response.status_code == 201
        session_id = response.json()["id"]

        again = client.post("/workout-sessions/start", json={"workout_id": day["workout_id"]}, headers=alice)
        assert again.status_code == 409

        active = client.get("/workout-sessions/active", headers=alice).json()
        assert active["session"]["id"] == session_id

        response = client.post(
            f"/workout-sessions/{session_id}/log-exercise",
            json={"exercise_id": exercise_id, "sets": [{"reps": 5, "weight": 100, "rpe": 8}]},
            headers=alice,
        )
        assert response.status_code == 200
        assert response.json()["performance"]["sets_completed"] == 1

        response = client.post(f"/workout-sessions/{session_id}/complete", json={"notes": "solid"}, headers=alice)
        assert response.status_code == 200
        result = response.json()
        assert result["session"]["status"] == "completed"
        assert len(result["one_rep_max_updates"]) == 1

        assert client.get("/workout-sessions/active", headers=alice).json() == {"session": None}
        history = client.get("/workout-sessions/history", headers=alice).json()
        assert [s["id"] for s in history["sessions"]] == [session_id]

    def test_other_user_cannot_log(self, client, alice, make_headers, plan):
        day = first_training_day(plan)
        session_id = client.post(
            "/workout-sessions/start", json={"workout_id": day["workout_id"]}, headers=alice
        ).json()["id"]

        response = client.post(
            f"/workout-sessions/{session_id}/log-exercise",
            json={"exercise_id": day["exercises"][0]["exercise_id"], "sets": [{"reps": 5, "weight": 50}]},
            headers=make_headers("bob"),
        )
        assert response.status_code == 403
        assert client.get(f"/workout-sessions/{session_id}", headers=make_headers("bob")).status_code == 403
        assert client.get(f"/workout-sessions/{session_id}", headers=alice).json()["status"] == "active"

    def test_metrics_bounds(self, client, alice):
        assert client.get("/workout-sessions/metrics?days=30", headers=alice).status_code == 200
        assert client.get("/workout-sessions/metrics?days=0", headers=alice).status_code == 400


class TestAnalytics:
    def test_one_rep_max(self, client, alice):
        response = client.post(
            "/analytics/one-rep-max", json={"exercise_id": 1, "weight": 100, "reps": 5}, headers=alice
        )
        assert response.status_code == 200
        body = response.json()
        assert body["estimated_max"] == pytest.approx(116.67, abs=0.01)
        assert body["method"] == "epley"


class TestCoaching:
    """Tests for invitation routes."""

    def test_invitations_require_coach(self, client, alice):
        response = client.post("/coach/invitations", json={"email": "client@example.com"}, headers=alice)
        assert response.status_code == 403

    def test_invite_and_accept(self, client, make_headers):
        coach = make_headers("coach1", UserRole.COACH)
        response = client.post("/coach/invitations", json={"email": "Client@Example.com"}, headers=coach)
        assert response.status_code == 201
        invitation = response.json()
        assert "token" not in invitation

        services = client.app.state.services
        stored = client.portal.call(services.repos.invitations.get, invitation["id"])

        client_headers = make_headers("client1", email="client@example.com")
        response = client.post("/invitations/accept", json={"token": stored.token}, headers=client_headers)
        assert response.status_code == 200
        assert response.json()["coach_id"] == "coach1"

        clients = client.get("/coach/clients", headers=coach).json()["clients"]
        assert [c["user_id"] for c in clients] == ["client1"]

    def test_cancel(self, client, make_headers):
        coach = make_headers("coach1", UserRole.COACH)
        invitation = client.post("/coach/invitations", json={"email": "c@example.com"}, headers=coach).json()

        assert client.delete(f"/coach/invitations/{invitation['id']}", headers=coach).status_code == 204
        assert client.delete(f"/coach/invitations/{invitation['id']}", headers=coach).status_code == 409


class TestMessages:
    """Tests for conversation and message routes."""

    def test_send_and_read(self, client, make_headers):
        coach = make_headers("coach1", UserRole.COACH)
        member = make_headers("client1")

        response = client.post("/messages", json={"recipient_id": "client1", "text": "hello"}, headers=coach)
        assert response.status_code == 201
        message = response.json()

        page = client.get(f"/messages/conversations/{message['conversation_id']}", headers=member).json()
        assert [m["text"] for m in page["messages"]] == ["hello"]

        response = client.post(f"/messages/{message['id']}/read", headers=member)
        assert response.status_code == 200
        assert response.json()["marked"]

    def test_outsider_forbidden(self, client, make_headers):
        coach = make_headers("coach1", UserRole.COACH)
        message = client.post("/messages", json={"recipient_id": "client1", "text": "hi"}, headers=coach).json()

        response = client.get(
            f"/messages/conversations/{message['conversation_id']}", headers=make_headers("mallory")
        )
        assert response.status_code == 403


class TestWebSocket:
    """Tests for the realtime endpoint."""

    def test_bad_token_is_rejected(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws?token=bad"):
                pass
        assert exc_info.value.code == 1008

    def test_ping_pong(self, client, app):
        token = app.state.tokens.create_access_token("alice")
        with client.websocket_connect(f"/ws?token={token}") as websocket:
            websocket.send_json({"type": "ping"})
            assert websocket.receive_json()["type"] == "pong"

    def test_subscribe_to_foreign_conversation(self, client, app, make_headers):
        coach = make_headers("coach1", UserRole.COACH)
        message = client.post("/messages", json={"recipient_id": "client1", "text": "hi"}, headers=coach).json()

        token = app.state.tokens.create_access_token("mallory")
        with client.websocket_connect(f"/ws?token={token}") as websocket:
            websocket.send_json({"action": "subscribe", "channel": f"conversation:{message['conversation_id']}"})
            frame = websocket.receive_json()
            assert frame["type"] == "error"
