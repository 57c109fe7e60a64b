"""HTTP tests for the Cruxlog API routers."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from src.analytics.notification_store import InMemoryBackend, NotificationStore
from src.dependencies import get_notification_store
from src.main import create_app

NOW = "2026-03-15T12:00:00"
CYCLE_SETTINGS = {"cycle_length": 28, "last_period_start_date": "2026-03-01"}


@pytest.fixture
def store() -> NotificationStore:
    return NotificationStore(InMemoryBackend(), storage_key="notification-messages")


@pytest.fixture
def client(store: NotificationStore) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_notification_store] = lambda: store
    return TestClient(app)


def workout(workout_id: str, workout_type: str, start_time: str, **extra: object) -> dict:
    return {"id": workout_id, "type": workout_type, "start_time": start_time, **extra}


def fire_before_period_reminder(client: TestClient) -> dict:
    response = client.post(
        "/api/v1/reminders/run",
        json={"now": "2026-03-28T09:00:00", "cycle_settings": CYCLE_SETTINGS},
    )
    assert response.status_code == 200
    return response.json()


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["notifications"] == 0


class TestStatistics:
    def test_statistics_payload(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/statistics",
            json={
                "now": NOW,
                "timeframe": "1week",
                "workouts": [
                    workout("w1", "BOULDERING", "2026-03-15T10:00:00", training_volume="TR3"),
                    workout("w2", "BOULDERING", "2026-03-14T18:00:00"),
                    workout("w3", "MENTAL_PRACTICE", "2026-03-05T07:00:00", focus_level=7),
                ],
                "events": [{"id": "e1", "type": "INJURY", "date": "2026-03-10"}],
                "cycle_settings": CYCLE_SETTINGS,
            },
        )
        assert response.status_code == 200
        body = response.json()
        stats = body["statistics"]

        assert stats["overall"]["total_workouts"] == 2
        assert stats["overall"]["current_streak"] == 2
        assert stats["workout_types"][0]["type"] == "BOULDERING"
        assert stats["training_volumes"] == [{"volume": "TR3", "count": 1, "percentage": 100}]
        # no mental session or fall inside the window: "never" renders as null
        assert stats["mental_sessions"]["days_since_last_session"] is None
        assert stats["falls"]["days_since_last_fall"] is None
        assert stats["injury_cycle"]["injuries_by_phase"]["follicular"] == 1
        assert len(stats["injury_cycle"]["injuries_by_cycle_day"]) == 28

        # mental practice 10 days ago + climbing without falls → two nudges
        assert body["reminders_fired"] == 2

    def test_unknown_timeframe(self, client: TestClient) -> None:
        response = client.post("/api/v1/statistics", json={"now": NOW, "timeframe": "2weeks"})
        assert response.status_code == 422

    def test_half_custom_range_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/statistics",
            json={"now": NOW, "timeframe": "custom", "custom_start": "2026-03-01T00:00:00"},
        )
        assert response.status_code == 422

    def test_full_custom_range_accepted(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/statistics",
            json={
                "now": NOW,
                "timeframe": "custom",
                "custom_start": "2026-03-01T00:00:00",
                "custom_end": "2026-03-15T23:59:59",
                "workouts": [workout("w1", "GYM", "2026-03-02T18:00:00")],
            },
        )
        assert response.status_code == 200
        assert response.json()["statistics"]["overall"]["total_workouts"] == 1

    def test_saved_preferences_gate_activity_nudges(self, client: TestClient) -> None:
        client.put("/api/v1/notifications/settings", json={"activity_reminders_enabled": False})
        response = client.post(
            "/api/v1/statistics",
            json={
                "now": NOW,
                "workouts": [workout("w1", "MENTAL_PRACTICE", "2026-03-05T07:00:00")],
            },
        )
        assert response.json()["reminders_fired"] == 0

    def test_invalid_workout_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/statistics",
            json={"workouts": [workout("w1", "SKIING", "2026-03-15T10:00:00")]},
        )
        assert response.status_code == 422


class TestCycle:
    def test_cycle_info(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/cycle/info",
            json={"settings": CYCLE_SETTINGS, "target_date": "2026-03-10"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["current_day"] == 10
        assert body["phase"] == "follicular"
        assert body["is_in_fertile_window"] is True
        assert body["next_period_date"] == "2026-03-29"
        assert body["next_ovulation_date"] == "2026-03-15"
        assert len(body["recommendations"]) == 5

    def test_invalid_cycle_length(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/cycle/info",
            json={"settings": {"cycle_length": 0, "last_period_start_date": "2026-03-01"}},
        )
        assert response.status_code == 422


class TestReminders:
    def test_run_is_idempotent_within_a_day(self, client: TestClient) -> None:
        first = fire_before_period_reminder(client)
        assert first["count"] == 1
        assert first["fired"][0]["type"] == "cycle_reminder"
        assert first["fired"][0]["dedup_key"] == "cycle_reminder:before_period:2026-03-28"

        second = fire_before_period_reminder(client)
        assert second["count"] == 0

    def test_run_all_families(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/reminders/run",
            json={
                "now": "2026-04-03T10:00:00",
                "cycle_settings": CYCLE_SETTINGS,
                "workouts": [workout("w1", "GYM", "2026-03-25T18:00:00")],
                "test_results": [{"id": "t1", "date": "2026-03-01"}],
                "notification_settings": {
                    "workout_inactivity_enabled": True,
                    "test_reminder_enabled": True,
                    "test_reminder_interval": 2,
                    "test_reminder_unit": "weeks",
                },
            },
        )
        assert response.status_code == 200
        keys = {r["logical_key"] for r in response.json()["fired"]}
        assert keys == {"overdue", "inactivity", "fingerboard_test"}


class TestNotifications:
    def test_inbox_lifecycle(self, client: TestClient) -> None:
        fire_before_period_reminder(client)

        listing = client.get("/api/v1/notifications").json()
        assert len(listing) == 1
        message_id = listing[0]["id"]
        assert client.get("/api/v1/notifications/unread-count").json() == {
            "unread": 1,
            "total": 1,
        }

        assert client.post(f"/api/v1/notifications/{message_id}/read").status_code == 204
        assert client.get("/api/v1/notifications/unread-count").json()["unread"] == 0

        assert client.delete(f"/api/v1/notifications/{message_id}").status_code == 204
        assert client.get("/api/v1/notifications").json() == []

    def test_read_all_and_clear(self, client: TestClient, store: NotificationStore) -> None:
        fire_before_period_reminder(client)
        assert client.post("/api/v1/notifications/read-all").status_code == 204
        assert store.get_unread_count() == 0

        assert client.delete("/api/v1/notifications").status_code == 204
        assert len(store) == 0

    def test_unknown_id_is_404(self, client: TestClient) -> None:
        assert client.post("/api/v1/notifications/msg_missing/read").status_code == 404
        assert client.delete("/api/v1/notifications/msg_missing").status_code == 404


class TestNotificationSettings:
    def test_defaults(self, client: TestClient) -> None:
        response = client.get("/api/v1/notifications/settings")
        assert response.status_code == 200
        body = response.json()
        assert body["cycle_reminders_enabled"] is True
        assert body["workout_inactivity_enabled"] is False
        assert body["workout_inactivity_days"] == 3

    def test_update_is_persisted(self, client: TestClient, store: NotificationStore) -> None:
        prefs = {
            "workout_inactivity_enabled": True,
            "workout_inactivity_days": 5,
            "test_reminder_enabled": True,
            "test_reminder_interval": 1,
            "test_reminder_unit": "months",
        }
        response = client.put("/api/v1/notifications/settings", json=prefs)
        assert response.status_code == 200
        assert response.json()["workout_inactivity_days"] == 5

        assert client.get("/api/v1/notifications/settings").json()["test_reminder_unit"] == "months"
        assert store.get_settings().workout_inactivity_enabled is True

    def test_invalid_update_rejected(self, client: TestClient, store: NotificationStore) -> None:
        response = client.put(
            "/api/v1/notifications/settings", json={"workout_inactivity_days": 0}
        )
        assert response.status_code == 422
        assert store.get_settings().workout_inactivity_days == 3

    def test_reminder_run_uses_saved_preferences(self, client: TestClient) -> None:
        client.put(
            "/api/v1/notifications/settings",
            json={"workout_inactivity_enabled": True, "activity_reminders_enabled": False},
        )
        response = client.post(
            "/api/v1/reminders/run",
            json={"now": NOW, "workouts": [workout("w1", "GYM", "2026-03-10T18:00:00")]},
        )
        assert response.status_code == 200
        assert [r["logical_key"] for r in response.json()["fired"]] == ["inactivity"]
