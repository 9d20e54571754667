# tests/test_commands.py

from __future__ import annotations

from datetime import timedelta

from goal_tracker.cli.commands import CommandRegistry, registry
from goal_tracker.connectors.console_connector import console_session
from goal_tracker.core.state import AppState
from goal_tracker.tasks.task_models import TaskStatus, UserSession

from .conftest import TODAY
from .fakes import RecordingEmailSender


def test_command_registry_routes_3_and_4_params(state: AppState) -> None:
    reg = CommandRegistry()
    called = {"h3": 0, "h4": 0}

    def h3(state, args, session):
        called["h3"] += 1
        return "h3"

    def h4(state, args, session, emit):
        called["h4"] += 1
        if emit is not None:
            emit("note")
        return "h4"

    reg.register("a", h3, "a")
    reg.register("b", h4, "b")

    assert reg.handle(state, "/a x") == "h3"
    assert reg.handle(state, "/b y", emit=lambda _: None) == "h4"
    assert called["h3"] == 1
    assert called["h4"] == 1


def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")


def test_signed_out_console_gets_a_message(state: AppState) -> None:
    reply = registry.handle(state, "/tasks", None) or ""
    assert reply.startswith("Please sign in first.")


def test_add_list_done_delete(state: AppState, session: UserSession) -> None:
    reply = registry.handle(state, f"/add Morning run | 5k easy | high | {TODAY.isoformat()}", session) or ""
    assert reply.startswith("Added:")

    (task,) = state.task_store.list_tasks(session.user_id)
    assert task.title == "Morning run"
    assert task.description == "5k easy"
    assert task.priority.value == "high"
    assert task.date == TODAY

    assert "Morning run" in (registry.handle(state, "/tasks", session) or "")

    assert registry.handle(state, f"/done {task.id[:8]}", session) == "Now completed: Morning run"
    assert state.task_store.get_task(session.user_id, task.id).status == TaskStatus.COMPLETED

    assert "1/1 done (100%)" in (registry.handle(state, "/today", session) or "")
    assert "Morning run [High] 1/1" in (registry.handle(state, "/habits", session) or "")
    assert "current streak 1d" in (registry.handle(state, "/calendar 7", session) or "")

    assert (registry.handle(state, "/del nonexistent", session) or "") == "Task not found: nonexistent"
    registry.handle(state, f"/del {task.id}", session)
    assert state.task_store.list_tasks(session.user_id) == []


def test_add_rejects_bad_priority(state: AppState, session: UserSession) -> None:
    reply = registry.handle(state, "/add Read | | urgent", session) or ""
    assert reply.startswith("Invalid input:")
    assert registry.handle(state, "/add", session) == (
        "Usage: /add title | description | priority | date | time | deadline"
    )


def test_notify_reports_sent_count(
    state: AppState, session: UserSession, sender: RecordingEmailSender
) -> None:
    state.task_store.add_task(
        session.user_id, title="Late", date=TODAY, deadline=TODAY - timedelta(days=1)
    )
    notes: list[str] = []

    reply = registry.handle(state, "/notify overdue", session, emit=notes.append)
    assert reply == "Successfully sent 1 notifications"
    assert notes == ["[NOTIFY] Running overdue pass..."]
    assert len(sender.sent) == 1
    assert "overdue_task" in (registry.handle(state, "/notifications", session) or "")

    assert (registry.handle(state, "/notify weekly", session) or "").startswith("Invalid input:")


def test_study_commands(state: AppState, session: UserSession) -> None:
    task = state.task_store.add_task(session.user_id, title="Read", date=TODAY, deadline=TODAY)

    assert registry.handle(state, f"/study start {task.id[:6]}", session) == "Studying: Read"
    state.timer_for(session).tick()
    assert registry.handle(state, "/study pause", session) == "Paused at 0:01."
    assert registry.handle(state, "/study pause", session) == "The timer is not running."
    registry.handle(state, "/study resume", session)
    assert registry.handle(state, "/study stop", session) == "Session saved: Read (0:01)."
    assert "Total studied: 0:01 in 1 session(s)" in (registry.handle(state, "/study", session) or "")


def test_notion_unconfigured(state: AppState, session: UserSession) -> None:
    reply = registry.handle(state, "/notion", session) or ""
    assert reply.startswith("Error: Notion credentials not configured")


def test_console_session_from_settings(state: AppState) -> None:
    session = console_session(state)
    assert session == UserSession(user_id="u1", email="u1@example.com")

    state.settings.console_user_id = ""
    assert console_session(state) is None
