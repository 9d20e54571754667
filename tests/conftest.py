# tests/conftest.py

from __future__ import annotations

from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from goal_tracker.core.state import AppState
from goal_tracker.notifications.trigger import NotificationService
from goal_tracker.notion.sync import NotionTaskSync
from goal_tracker.tasks.task_models import UserSession
from goal_tracker.tasks.task_store import TaskStore

from .fakes import RecordingEmailSender

TODAY = date(2024, 6, 15)


@pytest.fixture()
def today() -> date:
    return TODAY


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the connectors.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="goal-tracker-test",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "goals.sqlite3",
        # API / auth
        cors_origins=["*"],
        jwt_secret="test-secret",
        jwt_algorithm="HS256",
        jwt_audience="authenticated",
        # Views / notifications
        calendar_days=30,
        streak_threshold=80.0,
        notify_scheduler_enabled=False,
        notify_interval_seconds=86400.0,
        # Console identity
        console_user_id="u1",
        console_user_email="u1@example.com",
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture()
def session(store: TaskStore) -> UserSession:
    store.upsert_user("u1", "u1@example.com")
    return UserSession(user_id="u1", email="u1@example.com")


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, sender: RecordingEmailSender) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep a real SQLite TaskStore here because its correctness is part
    of what we want to test. Timers never tick on their own (ticker_factory=None).
    """
    return AppState(
        settings=settings,
        task_store=store,
        notifications=NotificationService(store, sender, today=lambda: TODAY),
        notion=NotionTaskSync(None, None),
        today=lambda: TODAY,
        ticker_factory=None,
    )
