# tests/test_api.py

from __future__ import annotations

import time
from datetime import timedelta

import httpx
import jwt
import pytest
from fastapi.testclient import TestClient

from goal_tracker.api.app import create_app
from goal_tracker.core.state import AppState
from goal_tracker.notion.sync import NotionTaskSync

from .conftest import TODAY
from .fakes import RecordingEmailSender


def token_for(user_id: str, email: str | None = None, *, secret: str = "test-secret", ttl: int = 3600) -> str:
    payload = {"sub": user_id, "aud": "authenticated", "exp": int(time.time()) + ttl}
    if email:
        payload["email"] = email
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture()
def client(state: AppState) -> TestClient:
    return TestClient(create_app(state))


@pytest.fixture()
def auth() -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for('u1', 'u1@example.com')}"}


def test_requests_without_valid_token_are_rejected(client: TestClient) -> None:
    assert client.get("/api/tasks").status_code == 401

    expired = token_for("u1", ttl=-60)
    assert client.get("/api/tasks", headers={"Authorization": f"Bearer {expired}"}).status_code == 401

    forged = token_for("u1", secret="wrong")
    resp = client.get("/api/tasks", headers={"Authorization": f"Bearer {forged}"})
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Invalid token"}


def test_task_crud_and_toggle(client: TestClient, auth: dict[str, str]) -> None:
    resp = client.post(
        "/api/tasks",
        json={"title": "Read", "date": TODAY.isoformat(), "priority": "high", "deadline": TODAY.isoformat()},
        headers=auth,
    )
    assert resp.status_code == 201
    task = resp.json()
    assert task["time"] == "8:00 pm"
    assert task["status"] == "pending"

    toggled = client.post(f"/api/tasks/{task['id']}/toggle", headers=auth).json()
    assert toggled["status"] == "completed"
    assert {k: toggled[k] for k in ("title", "date", "priority", "deadline")} == {
        k: task[k] for k in ("title", "date", "priority", "deadline")
    }

    patched = client.patch(f"/api/tasks/{task['id']}", json={"description": "ch. 2"}, headers=auth).json()
    assert patched["description"] == "ch. 2"
    assert patched["status"] == "completed"

    listed = client.get("/api/tasks", headers=auth).json()["tasks"]
    assert [t["id"] for t in listed] == [task["id"]]

    assert client.delete(f"/api/tasks/{task['id']}", headers=auth).status_code == 204
    assert client.delete(f"/api/tasks/{task['id']}", headers=auth).status_code == 404


def test_invalid_task_body_is_rejected(client: TestClient, auth: dict[str, str]) -> None:
    assert client.post("/api/tasks", json={"title": ""}, headers=auth).status_code == 422
    assert client.post("/api/tasks", json={"title": "x", "priority": "urgent"}, headers=auth).status_code == 422


def test_other_users_tasks_are_invisible(client: TestClient, auth: dict[str, str]) -> None:
    task = client.post(
        "/api/tasks", json={"title": "Mine", "date": TODAY.isoformat()}, headers=auth
    ).json()
    other = {"Authorization": f"Bearer {token_for('u2')}"}

    assert client.get("/api/tasks", headers=other).json() == {"tasks": []}
    assert client.post(f"/api/tasks/{task['id']}/toggle", headers=other).status_code == 404


def test_today_habits_and_calendar(client: TestClient, auth: dict[str, str]) -> None:
    day = TODAY.isoformat()
    for status in ("completed", "pending"):
        client.post("/api/tasks", json={"title": "Read", "date": day, "status": status}, headers=auth)

    today = client.get("/api/tasks/today", headers=auth).json()
    assert (today["completed"], today["total"], today["percentage"]) == (1, 2, 50)

    habits = client.get("/api/habits", headers=auth).json()
    (habit,) = habits["habits"]
    assert (habit["target"], habit["completed"], habit["completion_rate"]) == (2, 1, 50)
    assert habits["summary"]["active_streaks"] == 1

    calendar = client.get("/api/calendar", headers=auth).json()
    assert len(calendar["days"]) == 30
    assert calendar["days"][-1] == {"date": day, "completed": 1, "total": 2, "percentage": 50}
    assert calendar["summary"]["current_streak"] == 0


def test_notification_send_and_history(
    client: TestClient, auth: dict[str, str], sender: RecordingEmailSender
) -> None:
    client.post(
        "/api/tasks",
        json={
            "title": "Late",
            "date": TODAY.isoformat(),
            "deadline": (TODAY - timedelta(days=2)).isoformat(),
        },
        headers=auth,
    )

    resp = client.post("/api/notifications/send", json={"type": "check_overdue"}, headers=auth)
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "notifications_sent": 1,
        "message": "Successfully sent 1 notifications",
    }
    assert [e.to for e in sender.sent] == ["u1@example.com"]

    (logged,) = client.get("/api/notifications", headers=auth).json()["notifications"]
    assert logged["type"] == "overdue_task"

    assert client.post("/api/notifications/send", json={"type": "weekly"}, headers=auth).status_code == 422


def test_notification_setup_error_is_500(state: AppState, auth: dict[str, str]) -> None:
    state.notifications._sender = None
    client = TestClient(create_app(state))
    resp = client.post("/api/notifications/send", json={"type": "manual"}, headers=auth)
    assert resp.status_code == 500
    assert "not configured" in resp.json()["error"]


def test_study_timer_flow(client: TestClient, auth: dict[str, str], state: AppState) -> None:
    task = client.post("/api/tasks", json={"title": "Read", "date": TODAY.isoformat()}, headers=auth).json()

    started = client.post("/api/study/start", json={"task_id": task["id"]}, headers=auth).json()
    assert started["state"] == "running"

    timer = next(iter(state.timers.values()))
    for _ in range(3):
        timer.tick()

    assert client.post("/api/study/pause", headers=auth).json()["elapsed"] == 3
    assert client.post("/api/study/pause", headers=auth).status_code == 409
    client.post("/api/study/resume", headers=auth)

    stopped = client.post("/api/study/stop", headers=auth).json()
    assert stopped["state"] == "idle"
    (session,) = stopped["history"]
    assert session["duration"] == 3
    assert [s.duration for s in state.task_store.list_study_sessions("u1")] == [3]

    assert client.post("/api/study/dance", headers=auth).status_code == 422


def test_notion_proxy(state: AppState, auth: dict[str, str]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"id": "db1"})
        if request.url.path.endswith("/query"):
            return httpx.Response(
                200,
                json={"results": [{"id": "p1", "properties": {"Title": {"title": [{"plain_text": "Read"}]}}}]},
            )
        return httpx.Response(400, text="validation_error: Status is not a property")

    state.notion = NotionTaskSync(
        "secret",
        "db1",
        base_url="https://notion.test/v1",
        transport=httpx.MockTransport(handler),
        today=lambda: TODAY,
    )
    client = TestClient(create_app(state))

    (task,) = client.get("/api/notion/tasks", headers=auth).json()["tasks"]
    assert task["title"] == "Read"
    assert task["date"] == TODAY.isoformat()

    resp = client.patch("/api/notion/tasks", json={"id": "p1", "status": "completed"}, headers=auth)
    assert resp.status_code == 500
    assert "Status is not a property" in resp.json()["error"]


def test_notion_without_credentials_is_500(client: TestClient, auth: dict[str, str]) -> None:
    resp = client.get("/api/notion/tasks", headers=auth)
    assert resp.status_code == 500
    assert "credentials not configured" in resp.json()["error"]
