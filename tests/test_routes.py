"""Tests for the reminder HTTP API."""

import pytest
from fastapi.testclient import TestClient

from reminder_server.app import app
from reminder_server.config import Settings
from reminder_server.services.reminders.errors import AdapterFailure
from reminder_server.services.reminders.notifier import InMemoryNotificationScheduler
from reminder_server.services.reminders.persistence import InMemoryKeyValueStore
from reminder_server.services.reminders.runtime import build_reminder_runtime, get_reminder_runtime

DAILY_MOOD = {
    "notifications_enabled": True,
    "preferences": {
        "mood": {"enabled": True, "frequency": "Daily", "time": "09:00"},
    },
}


@pytest.fixture
def runtime():
    return build_reminder_runtime(
        settings=Settings(storage_backend="memory"),
        store=InMemoryKeyValueStore(),
        scheduler=InMemoryNotificationScheduler(),
    )


@pytest.fixture
def client(runtime):
    app.dependency_overrides[get_reminder_runtime] = lambda: runtime
    # No context manager: startup hooks (app-start pass, dispatcher) stay off
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestSettingsEndpoints:
    """Tests for reading and writing settings."""

    def test_defaults_when_nothing_stored(self, client):
        """Test GET returns default settings on a fresh store."""
        response = client.get("/api/reminders/settings")

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["settings"] == {"notifications_enabled": True, "preferences": {}}

    def test_put_stores_and_schedules(self, client, runtime):
        """Test PUT persists settings and runs a full pass."""
        response = client.put("/api/reminders/settings", json=DAILY_MOOD)

        assert response.status_code == 200
        body = response.json()
        assert body["result"]["status"] == "full"
        # A daily preference always yields exactly one trigger
        assert len(body["result"]["scheduled"]["mood"]) == 1
        assert body["result"]["scheduled"]["journal"] == []

        stored = client.get("/api/reminders/settings").json()["settings"]
        assert stored["preferences"]["mood"]["time"] == "09:00"

    def test_put_same_settings_twice_skips(self, client):
        """Test an unchanged second save does not rebuild triggers."""
        client.put("/api/reminders/settings", json=DAILY_MOOD)
        response = client.put("/api/reminders/settings", json=DAILY_MOOD)

        assert response.json()["result"]["status"] == "skipped"

    def test_user_settings_shape(self, client):
        """Test the flat app settings document is accepted."""
        response = client.put(
            "/api/reminders/settings/user",
            json={
                "notificationsEnabled": True,
                "journalReminderEnabled": True,
                "journalReminderFrequency": "custom",
                "journalReminderCustomSchedule": {"tue": "20:00", "fri": "20:00", "funday": "10:00"},
                "notifJournaling": True,
            },
        )

        assert response.status_code == 200
        stored = client.get("/api/reminders/settings").json()["settings"]
        journal = stored["preferences"]["journal"]
        assert journal["frequency"] == "Custom"
        assert set(journal["custom_schedule"]) == {"tue", "fri"}

    def test_invalid_body_is_rejected(self, client):
        """Test malformed settings produce the standard error envelope."""
        response = client.put("/api/reminders/settings", json={"preferences": "nope"})

        assert response.status_code == 422
        assert response.json()["ok"] is False

    def test_store_failure_maps_to_503(self, client, runtime):
        """Test persistence failures surface as service unavailable."""

        async def broken_save(settings):
            raise AdapterFailure("read-only")

        runtime.settings_provider.save = broken_save

        response = client.put("/api/reminders/settings", json=DAILY_MOOD)

        assert response.status_code == 503
        assert response.json() == {"ok": False, "error": "Failed to store reminder settings"}


class TestSchedulingEndpoints:
    """Tests for passes, events, listing and cancellation."""

    def test_schedule_and_list(self, client):
        """Test the schedule endpoint uses stored settings and triggers are listed."""
        client.put("/api/reminders/settings", json=DAILY_MOOD)

        response = client.post("/api/reminders/schedule")
        assert response.json()["result"]["status"] == "skipped"

        listed = client.get("/api/reminders/scheduled").json()["notifications"]
        assert len(listed) == 1
        assert listed[0]["content"]["title"] == "Mood check-in"
        assert listed[0]["content"]["data"]["type"] == "mood"

    def test_foreign_event_is_ignored(self, client):
        """Test events without a reminder payload do not reschedule."""
        response = client.post("/api/reminders/events/received", json={"data": {"type": "appointment"}})

        assert response.json() == {"ok": True, "rescheduled": False, "result": None}

    def test_tapped_reminder_reschedules(self, client):
        """Test tapping a reminder runs a pass."""
        client.put("/api/reminders/settings", json=DAILY_MOOD)

        response = client.post("/api/reminders/events/tapped", json={"data": {"type": "mood", "bootstrap": True}})

        body = response.json()
        assert body["rescheduled"] is True
        assert body["result"]["status"] == "full"

    def test_cancel_all(self, client):
        """Test DELETE removes every reminder trigger."""
        client.put("/api/reminders/settings", json=DAILY_MOOD)

        response = client.delete("/api/reminders")

        assert response.json()["canceled"] >= 1
        assert client.get("/api/reminders/scheduled").json()["notifications"] == []
