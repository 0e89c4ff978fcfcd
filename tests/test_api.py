from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.main import app, get_reminder_service
from app.models import Assignment, Priority, SendResult, UserContact
from app.services.reminder_service import ReminderService

SECRET = "cron-test-secret"


class DummyStore:
    def __init__(self, assignments=None, users=None, fail=False):
        self.assignments = assignments or []
        self.users = users or {}
        self.fail = fail
        self.queried = False

    def list_incomplete_due_between(self, start, end):
        self.queried = True
        if self.fail:
            raise RuntimeError("firestore unavailable")
        return [a for a in self.assignments if start <= a.due_date <= end]

    def list_incomplete_created_since(self, since):
        self.queried = True
        return [a for a in self.assignments if a.created_at and a.created_at >= since]

    def get_user(self, user_id):
        return self.users.get(user_id)


class DummyNotifier:
    def __init__(self, success=True):
        self.success = success
        self.calls = []

    async def send(self, user_email, user_name, buckets, template_type):
        self.calls.append((user_email, template_type))
        if self.success:
            return SendResult(success=True, data={"id": "x"})
        return SendResult(success=False, error="rejected")


@pytest.fixture
def wired(monkeypatch):
    now = datetime.now(timezone.utc)
    store = DummyStore(
        [
            Assignment(
                id="a1",
                user_id="u1",
                title="Problem Set",
                course="MATH 101",
                due_date=now + timedelta(hours=3),
                priority=Priority.HIGH,
                created_at=now - timedelta(minutes=5),
            )
        ],
        {"u1": UserContact(user_id="u1", email="u1@school.edu", name="Ada")},
    )
    notifier = DummyNotifier()
    app.dependency_overrides[get_reminder_service] = lambda: ReminderService(store, notifier)
    monkeypatch.setattr(settings, "cron_secret", SECRET)
    monkeypatch.setattr(settings, "app_env", "production")
    yield store, notifier
    app.dependency_overrides.clear()


client = TestClient(app)
AUTH = {"Authorization": f"Bearer {SECRET}"}


def test_health():
    assert client.get("/health").json() == {"status": "ok"}


def test_cron_rejects_missing_and_wrong_secret(wired):
    store, notifier = wired
    assert client.get("/api/cron/check-assignments").status_code == 401
    resp = client.get("/api/cron/check-assignments", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}
    assert not store.queried
    assert notifier.calls == []


def test_cron_rejects_everything_when_secret_unset(wired, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", "")
    assert client.get("/api/cron/smart-reminders", headers={"Authorization": "Bearer "}).status_code == 401


def test_daily_digest_returns_summary(wired):
    _, notifier = wired
    resp = client.get("/api/cron/check-assignments", headers=AUTH)
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["stats"]["totalChecked"] == 1
    assert body["stats"]["usersProcessed"] == 1
    assert body["stats"]["emailsSent"] == 1
    assert body["stats"]["emailsFailed"] == 0
    assert body["results"][0]["email"] == "u1@school.edu"
    assert body["results"][0]["status"] == "sent"
    assert len(notifier.calls) == 1


def test_smart_reminders_route_sends_new_assignment_alert(wired):
    _, notifier = wired
    resp = client.get("/api/cron/smart-reminders", headers=AUTH)
    assert resp.status_code == 200
    assert resp.json()["stats"]["emailsSent"] == 1
    assert notifier.calls[0][1].value == "urgent"


def test_store_failure_returns_500(wired):
    store, _ = wired
    store.fail = True
    resp = client.get("/api/cron/check-assignments", headers=AUTH)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error", "message": "firestore unavailable"}


def test_test_mode_requires_secret_in_production(wired):
    assert client.get("/api/cron/test-mode").status_code == 401
    assert client.get("/api/cron/test-mode", headers=AUTH).status_code == 200


def test_test_mode_bypasses_secret_in_development(wired, monkeypatch):
    monkeypatch.setattr(settings, "app_env", "development")
    resp = client.get("/api/cron/test-mode")
    assert resp.status_code == 200
    assert resp.json()["stats"]["emailsSent"] == 1


def test_test_email_disabled_in_production(wired):
    resp = client.post("/api/test-email", json={"email": "me@x.edu", "name": "Me"})
    assert resp.status_code == 403


def test_test_email_in_development(wired, monkeypatch):
    _, notifier = wired
    monkeypatch.setattr(settings, "app_env", "development")
    assert client.post("/api/test-email", json={"email": "me@x.edu"}).status_code == 400
    resp = client.post("/api/test-email", json={"email": "me@x.edu", "name": "Me", "type": "tomorrow"})
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert len(notifier.calls) == 1
    email, template = notifier.calls[0]
    assert email == "me@x.edu"
    assert template.value == "tomorrow"


def test_test_email_rejects_types_outside_the_reminder_set(wired, monkeypatch):
    _, notifier = wired
    monkeypatch.setattr(settings, "app_env", "development")
    for kind in ("daily_digest", "weekly"):
        resp = client.post("/api/test-email", json={"email": "me@x.edu", "name": "Me", "type": kind})
        assert resp.status_code == 400
        assert kind in resp.json()["error"]
    assert notifier.calls == []


def test_test_email_send_failure_returns_500(wired, monkeypatch):
    _, notifier = wired
    notifier.success = False
    monkeypatch.setattr(settings, "app_env", "development")
    resp = client.post("/api/test-email", json={"email": "me@x.edu", "name": "Me"})
    assert resp.status_code == 500
    assert resp.json()["details"] == "rejected"
