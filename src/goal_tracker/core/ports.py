# src/goal_tracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/email/sync providers swappable and makes testing easier.
"""

from datetime import date
from typing import Any, Awaitable, Protocol

from ..tasks.task_models import (
    NotificationRecord,
    NotificationType,
    OverdueTaskRow,
    Task,
    UserStreakRow,
)


class TaskRepo(Protocol):
    """Per-user task CRUD (what the signed-in client may touch)."""

    def list_tasks(self, user_id: str) -> list[Task]: ...
    def get_task(self, user_id: str, task_id: str) -> Task: ...
    def add_task(self, user_id: str, **fields: Any) -> Task: ...
    def update_task(self, user_id: str, task_id: str, **fields: Any) -> Task: ...
    def delete_task(self, user_id: str, task_id: str) -> None: ...


class NotificationRepo(Protocol):
    """Server-side queries + the append-only audit log."""

    def get_overdue_tasks(self, today: date | None = None) -> list[OverdueTaskRow]: ...
    def get_user_streaks(self, today: date | None = None, threshold: float = ...) -> list[UserStreakRow]: ...
    def mark_overdue(self, today: date | None = None) -> int: ...

    def add_notification(
        self,
        *,
        user_id: str,
        type: NotificationType,
        email_subject: str,
        email_body: str,
        task_id: str | None = None,
        streak_count: int | None = None,
    ) -> NotificationRecord: ...

    def list_notifications(self, user_id: str, limit: int = 10) -> list[NotificationRecord]: ...


class EmailSender(Protocol):
    """
    Outbound email port used by the notification fan-out.

    Implementations raise EmailSendError when a single message fails.
    """

    def send_email(self, *, to: str, subject: str, html: str) -> Awaitable[None]: ...
