"""
Unit tests for the notification and assessment API routes.

Each test runs against a StoreManager over an in-memory key-value store,
patched into the route modules in place of the SQLite-backed singleton.
"""
import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from notification_center import MemoryKeyValueStore, VitalsSnapshot
from notification_center.vitals_client import VitalsFetchError
from assessment_flow.fallback_flows import MEDICATION_OPTION


@pytest.fixture
def manager():
    from server.dashboard_api.database import StoreManager

    return StoreManager(kv=MemoryKeyValueStore())


@pytest.fixture
def client(manager):
    from server.dashboard_api.main import app
    from server.dashboard_api.services.session_registry import SessionRegistry

    registry = SessionRegistry(max_sessions=10)
    with patch("server.dashboard_api.routes.notifications.store_manager", manager), \
            patch("server.dashboard_api.routes.assessments.store_manager", manager), \
            patch("server.dashboard_api.routes.identity.store_manager", manager), \
            patch("server.dashboard_api.routes.assessments.session_registry", registry):
        yield TestClient(app)


class TestHealth:
    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestNotificationRoutes:
    """Test reconciliation and read-state endpoints."""

    def test_list_without_identity(self, client):
        """No cached user: the list still loads, flagged as identity missing."""
        response = client.get("/api/notifications")

        assert response.status_code == 200
        body = response.json()
        assert body["notifications"] == []
        assert body["unreadCount"] == 0
        assert body["identityMissing"] is True

    def test_list_with_alerts_and_filters(self, client, manager):
        manager.system.add("Welcome", "Notifications are on")
        with patch.object(
            manager.vitals, "fetch_snapshot",
            new=AsyncMock(return_value=VitalsSnapshot(systolic=150, diastolic=95)),
        ):
            body = client.get("/api/notifications").json()
            alerts_only = client.get("/api/notifications", params={"filter": "Alert"}).json()

        assert body["unreadCount"] == 2
        assert body["alertsDerived"] == 1
        assert {n["type"] for n in body["notifications"]} == {"Alert", "System"}
        assert [n["id"] for n in alerts_only["notifications"]] == ["bp-high-150-95"]
        assert alerts_only["notifications"][0]["alertType"] == "bloodPressure"

    def test_vitals_error_reported(self, client, manager):
        with patch.object(
            manager.vitals, "fetch_snapshot", new=AsyncMock(side_effect=VitalsFetchError("API failed: 502"))
        ):
            body = client.get("/api/notifications").json()

        assert body["vitalsError"] == "API failed: 502"
        assert body["identityMissing"] is False

    def test_mark_read_and_unread_count(self, client, manager):
        created = client.post("/api/notifications/system", json={"title": "Hi", "message": "There"}).json()
        client.get("/api/notifications")

        assert client.get("/api/notifications/unread-count").json() == {"unreadCount": 1}

        response = client.post(f"/api/notifications/{created['id']}/read")

        assert response.status_code == 200
        assert response.json()["read"] is True
        assert client.get("/api/notifications/unread-count").json() == {"unreadCount": 0}

    def test_read_state_survives_next_reconcile(self, client, manager):
        snapshot = AsyncMock(return_value=VitalsSnapshot(glucose=200))
        with patch.object(manager.vitals, "fetch_snapshot", new=snapshot):
            client.get("/api/notifications")
            client.post("/api/notifications/glucose-high-200/read")
            body = client.get("/api/notifications").json()

        assert body["notifications"][0]["read"] is True
        assert body["unreadCount"] == 0

    def test_mark_unknown_read(self, client):
        assert client.post("/api/notifications/nope/read").status_code == 404

    def test_read_all(self, client, manager):
        manager.system.add("One", "m")
        manager.system.add("Two", "m")
        client.get("/api/notifications")

        notifications = client.post("/api/notifications/read-all").json()

        assert len(notifications) == 2
        assert all(n["read"] for n in notifications)

    def test_filters(self, client):
        assert client.get("/api/notifications/filters").json() == ["All", "Unread", "Alert", "System"]

    def test_open_routes(self, client, manager):
        system = manager.system.add("Welcome", "m")
        with patch.object(
            manager.vitals, "fetch_snapshot",
            new=AsyncMock(return_value=VitalsSnapshot(weight=100)),
        ):
            client.get("/api/notifications")

        alert_route = client.post("/api/notifications/weight-high-100/open").json()
        system_route = client.post(f"/api/notifications/{system.id}/open").json()

        assert alert_route["screen"] == "assessment_flow"
        assert alert_route["params"]["alertType"] == "weight"
        assert system_route == {"screen": None, "params": {}}
        assert client.post("/api/notifications/missing/open").status_code == 404

    def test_system_notification_validation(self, client):
        response = client.post("/api/notifications/system", json={"title": "", "message": "m"})

        assert response.status_code == 422


class TestAssessmentRoutes:
    """Test walking an assessment through the API."""

    def _start(self, client, alert_type="bloodPressure"):
        response = client.post("/api/assessments", json={"alertType": alert_type})
        assert response.status_code == 201
        return response.json()

    def test_start_uses_fallback_flow(self, client):
        session = self._start(client)

        assert session["generated"] is False
        assert session["currentStep"] == 0
        assert session["currentNode"]["id"] == "physicalActivity"
        assert session["canAdvance"] is False
        assert len(session["flow"]) == 9

    def test_start_unknown_alert_type(self, client):
        assert client.post("/api/assessments", json={"alertType": "heartRate"}).status_code == 422

    def test_walk_and_complete(self, client, manager):
        session_id = self._start(client)["sessionId"]

        def post(path, **kwargs):
            response = client.post(f"/api/assessments/{session_id}/{path}", **kwargs)
            assert response.status_code == 200, response.text
            return response.json()

        post("select", json={"nodeId": "physicalActivity", "option": "No"})
        assert post("advance")["currentNode"]["id"] == "assessmentChoice"
        post("select", json={"nodeId": "assessmentChoice", "option": MEDICATION_OPTION})
        post("advance")
        post("select", json={"nodeId": "medicationAdherence", "option": "Yes"})
        post("advance")
        state = post("toggle", json={"nodeId": "symptomAssessment", "option": "Headaches"})
        assert state["answers"]["symptomAssessment"] == ["Headaches"]
        state = post("advance")
        assert state["currentNode"]["type"] == "completion"

        completed = post("complete")

        assert completed["completed"] is True
        assert completed["progress"] == 1.0
        summary = completed["summary"]
        assert summary["id"].startswith("bp-assessment-")
        assert summary["summary"]["totalSymptoms"] == 1
        assert summary["summary"]["aiAnalysis"].startswith("Unable to generate AI summary")

        stored = client.get("/api/assessments/stored").json()
        assert [s["id"] for s in stored] == [summary["id"]]

        # The completed assessment shows up on the next reconciliation
        listed = client.get("/api/notifications", params={"filter": "Store"}).json()
        assert [n["id"] for n in listed["notifications"]] == [summary["id"]]

        # Completing again does not store a second copy
        assert post("complete")["summary"]["id"] == summary["id"]
        assert len(client.get("/api/assessments/stored").json()) == 1
        assert client.get("/api/assessments/stats").json()["total_completed"] == 1

    def test_advance_without_answer_reports_unchanged(self, client):
        session_id = self._start(client)["sessionId"]

        state = client.post(f"/api/assessments/{session_id}/advance").json()

        assert state["changed"] is False
        assert state["currentStep"] == 0

    def test_back(self, client):
        session_id = self._start(client, "bloodGlucose")["sessionId"]
        client.post(f"/api/assessments/{session_id}/select", json={"nodeId": "recentFood", "option": "Yes"})
        client.post(f"/api/assessments/{session_id}/advance")

        state = client.post(f"/api/assessments/{session_id}/back").json()

        assert state["changed"] is True
        assert state["currentNode"]["id"] == "recentFood"

    def test_engine_misuse_is_conflict(self, client):
        session_id = self._start(client)["sessionId"]

        complete = client.post(f"/api/assessments/{session_id}/complete")
        wrong_kind = client.post(
            f"/api/assessments/{session_id}/toggle", json={"nodeId": "physicalActivity", "option": "Yes"}
        )

        assert complete.status_code == 409
        assert wrong_kind.status_code == 409

    def test_option_not_offered_is_conflict(self, client):
        session_id = self._start(client)["sessionId"]

        response = client.post(
            f"/api/assessments/{session_id}/select", json={"nodeId": "physicalActivity", "option": "Maybe"}
        )

        assert response.status_code == 409
        assert client.get(f"/api/assessments/{session_id}").json()["answers"] == {}

    def test_unknown_session(self, client):
        assert client.get("/api/assessments/missing").status_code == 404
        assert client.post("/api/assessments/missing/advance").status_code == 404

    def test_stats(self, client):
        self._start(client)
        self._start(client, "weight")

        stats = client.get("/api/assessments/stats").json()

        assert stats["total_started"] == 2
        assert stats["active_sessions"] == 2
        assert stats["sessions_by_type"] == {"bloodPressure": 1, "weight": 1}


class TestIdentityRoutes:
    """Test storing and clearing the cached identity."""

    def test_sign_in_enables_vitals_fetch(self, client, manager):
        response = client.put(
            "/api/identity", json={"user": {"id": "patient-42"}, "token": "abc"}
        )

        assert response.status_code == 200
        assert manager.identity.get_user() == {"id": "patient-42"}
        assert manager.identity.get_token() == "abc"

    def test_sign_out(self, client, manager):
        manager.identity.sign_in({"id": "p"}, "t")

        assert client.delete("/api/identity").json() == {"status": "signed_out"}
        assert manager.identity.get_user() is None
