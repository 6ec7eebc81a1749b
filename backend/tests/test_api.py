"""
tests/test_api.py
-----------------
End-to-end tests for the HTTP surface, run against in-memory storage and a
recording dispatcher.

Run with:
    pytest tests/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app
from app.models import NotificationKind
from conftest import USER_ID

HEADERS = {"x-user-id": USER_ID}

PROFILE = {
    "age_range": "AGE_20_34",
    "pregnancy_weeks": 30,
    "first_pregnancy": True,
    "known_conditions": [],
}


def _client(store, dispatcher):
    settings = Settings(storage_backend="memory", _env_file=None)
    return TestClient(create_app(settings, store=store, dispatcher=dispatcher))


@pytest.fixture
def client(store, dispatcher):
    with _client(store, dispatcher) as c:
        yield c


def _settle(client) -> None:
    assert client.app.state.trigger.wait_idle(timeout=5)


# ===========================================================================
# Identity
# ===========================================================================

class TestIdentity:

    @pytest.mark.parametrize("path", ["/care-priority", "/blood-pressure", "/symptoms", "/profile"])
    def test_missing_header_is_rejected(self, client, path):
        response = client.get(path)
        assert response.status_code == 401

    def test_blank_header_is_rejected(self, client):
        response = client.get("/care-priority", headers={"x-user-id": "   "})
        assert response.status_code == 401

    def test_health_needs_no_identity(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


# ===========================================================================
# Blood pressure
# ===========================================================================

class TestBloodPressure:

    def test_create_reading_queues_assessment(self, client, dispatcher):
        response = client.post(
            "/blood-pressure", json={"systolic": 165, "diastolic": 100}, headers=HEADERS
        )
        assert response.status_code == 201
        body = response.json()
        assert body["systolic"] == 165
        assert body["user_id"] == USER_ID

        _settle(client)
        assert dispatcher.kinds == [NotificationKind.SEVERE_BP, NotificationKind.CARE_PRIORITY]
        assert dispatcher.events[0].payload["systolic"] == 165
        assert dispatcher.events[1].payload == {"priority": "EMERGENCY"}

    @pytest.mark.parametrize("body", [
        {"systolic": 300, "diastolic": 90},
        {"systolic": 120, "diastolic": 20},
        {"systolic": 120},
    ])
    def test_out_of_range_reading_is_rejected(self, client, store, body):
        response = client.post("/blood-pressure", json=body, headers=HEADERS)
        assert response.status_code == 422
        assert store.list_readings(USER_ID) == []

    def test_latest_is_null_without_readings(self, client):
        response = client.get("/blood-pressure/latest", headers=HEADERS)
        assert response.status_code == 200
        assert response.json() is None

    def test_list_is_newest_first(self, client):
        for systolic, ts in [(118, "2026-03-01T08:00:00Z"), (124, "2026-03-01T10:00:00Z")]:
            client.post(
                "/blood-pressure",
                json={"systolic": systolic, "diastolic": 78, "recorded_at": ts},
                headers=HEADERS,
            )
        _settle(client)

        readings = client.get("/blood-pressure", headers=HEADERS).json()
        assert [r["systolic"] for r in readings] == [124, 118]
        latest = client.get("/blood-pressure/latest", headers=HEADERS).json()
        assert latest["systolic"] == 124

    def test_readings_are_scoped_to_the_caller(self, client):
        client.post("/blood-pressure", json={"systolic": 120, "diastolic": 80}, headers=HEADERS)
        _settle(client)
        other = client.get("/blood-pressure", headers={"x-user-id": "someone-else"})
        assert other.json() == []


# ===========================================================================
# Symptoms
# ===========================================================================

class TestSymptoms:

    def test_create_symptom_queues_assessment(self, client, dispatcher):
        client.put("/profile", json=PROFILE, headers=HEADERS)
        response = client.post(
            "/symptoms", json={"symptom_type": "SWELLING"}, headers=HEADERS
        )
        assert response.status_code == 201
        assert response.json()["symptom_type"] == "SWELLING"

        _settle(client)
        assert dispatcher.kinds == [
            NotificationKind.WARNING_SYMPTOM,
            NotificationKind.CARE_PRIORITY,
        ]

    def test_unknown_symptom_is_rejected(self, client):
        response = client.post("/symptoms", json={"symptom_type": "DIZZINESS"}, headers=HEADERS)
        assert response.status_code == 422

    def test_recent_symptoms(self, client):
        client.post("/symptoms", json={"symptom_type": "HEADACHE"}, headers=HEADERS)
        client.post(
            "/symptoms",
            json={"symptom_type": "SWELLING", "recorded_at": "2020-01-01T00:00:00Z"},
            headers=HEADERS,
        )
        _settle(client)

        recent = client.get("/symptoms/recent", headers=HEADERS).json()
        assert [s["symptom_type"] for s in recent] == ["HEADACHE"]
        everything = client.get("/symptoms", headers=HEADERS).json()
        assert len(everything) == 2


# ===========================================================================
# Profile
# ===========================================================================

class TestProfile:

    def test_missing_profile_is_404(self, client):
        response = client.get("/profile", headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "PROFILE_NOT_FOUND"

    def test_put_then_get(self, client):
        body = dict(PROFILE, age_range="AGE_35_PLUS", known_conditions=["CHRONIC_HYPERTENSION"])
        assert client.put("/profile", json=body, headers=HEADERS).status_code == 200

        profile = client.get("/profile", headers=HEADERS).json()
        assert profile["user_id"] == USER_ID
        assert profile["age_range"] == "AGE_35_PLUS"
        assert profile["known_conditions"] == ["CHRONIC_HYPERTENSION"]

    def test_pregnancy_weeks_out_of_range(self, client):
        response = client.put("/profile", json=dict(PROFILE, pregnancy_weeks=50), headers=HEADERS)
        assert response.status_code == 422


# ===========================================================================
# Append-only history
# ===========================================================================

class TestNoDeletes:

    @pytest.mark.parametrize("path, status", [
        ("/blood-pressure/1", 404),
        ("/symptoms/1", 404),
        ("/profile", 405),
    ])
    def test_delete_is_not_routed(self, client, path, status):
        assert client.delete(path, headers=HEADERS).status_code == status

    def test_delete_leaves_history_in_place(self, client):
        client.put("/profile", json=PROFILE, headers=HEADERS)
        client.post("/blood-pressure", json={"systolic": 118, "diastolic": 76}, headers=HEADERS)
        _settle(client)

        client.delete("/profile", headers=HEADERS)
        client.delete("/blood-pressure/1", headers=HEADERS)

        assert client.get("/profile", headers=HEADERS).status_code == 200
        assert len(client.get("/blood-pressure", headers=HEADERS).json()) == 1


# ===========================================================================
# Care priority
# ===========================================================================

class TestCarePriorityEndpoint:

    def test_routine_with_profile_and_no_data(self, client, dispatcher):
        client.put("/profile", json=PROFILE, headers=HEADERS)
        response = client.get("/care-priority", headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["priority"] == "ROUTINE"
        assert body["reasons"] == ["No concerning factors identified"]
        assert body["message"]
        assert "timestamp" in body
        assert dispatcher.attempts == 0

    def test_missing_profile_never_routine(self, client):
        body = client.get("/care-priority", headers=HEADERS).json()
        assert body["priority"] == "INCREASED_MONITORING"
        assert body["reasons"][-1].startswith("Unable to complete assessment")

    def test_dangerous_symptom_pair_is_emergency(self, client):
        client.put("/profile", json=PROFILE, headers=HEADERS)
        client.post("/symptoms", json={"symptom_type": "HEADACHE"}, headers=HEADERS)
        client.post("/symptoms", json={"symptom_type": "BLURRED_VISION"}, headers=HEADERS)
        _settle(client)

        body = client.get("/care-priority", headers=HEADERS).json()
        assert body["priority"] == "EMERGENCY"
        assert "Combination of severe headache and vision changes" in body["reasons"]

    def test_reading_does_not_notify_on_read(self, client, dispatcher):
        client.put("/profile", json=PROFILE, headers=HEADERS)
        client.post("/blood-pressure", json={"systolic": 165, "diastolic": 100}, headers=HEADERS)
        _settle(client)
        sent = dispatcher.attempts

        for _ in range(3):
            assert client.get("/care-priority", headers=HEADERS).json()["priority"] == "EMERGENCY"
        assert dispatcher.attempts == sent

    def test_total_outage_is_503(self, flaky_store, dispatcher):
        flaky_store.fail()
        with _client(flaky_store, dispatcher) as client:
            response = client.get("/care-priority", headers=HEADERS)
        assert response.status_code == 503
        assert response.json()["detail"]["error"] == "ASSESSMENT_UNAVAILABLE"

    def test_partial_outage_degrades_to_monitoring(self, flaky_store, dispatcher):
        flaky_store.fail("symptoms_since")
        with _client(flaky_store, dispatcher) as client:
            client.put("/profile", json=PROFILE, headers=HEADERS)
            response = client.get("/care-priority", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["priority"] == "INCREASED_MONITORING"


# ===========================================================================
# Lifecycle
# ===========================================================================

class TestLifecycle:

    def test_shutdown_drains_queue_and_closes_dispatcher(self, store, dispatcher):
        with _client(store, dispatcher) as client:
            client.post(
                "/blood-pressure", json={"systolic": 165, "diastolic": 100}, headers=HEADERS
            )
            assert dispatcher.closed is False

        assert dispatcher.closed is True
        assert NotificationKind.CARE_PRIORITY in dispatcher.kinds
