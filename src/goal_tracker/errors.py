# src/goal_tracker/errors.py

"""
Error taxonomy shared by the store, the notification fan-out and the sync proxy.

Connectors (HTTP API, console) translate these into user-visible messages;
nothing here is fatal to the process.
"""

from __future__ import annotations


class GoalTrackerError(Exception):
    """Base class for all application errors."""


class AuthRequired(GoalTrackerError):
    """No signed-in user in the current context."""

    def __init__(self, message: str = "Please sign in first.") -> None:
        super().__init__(message)


class StoreError(GoalTrackerError):
    """The backing database failed (I/O, locking, constraint, permission)."""


class TaskNotFound(StoreError):
    """Task id does not exist or belongs to another user."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class EmailSendError(GoalTrackerError):
    """A single outbound email could not be delivered."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotificationSetupError(GoalTrackerError):
    """Email delivery is not configured; nothing can be sent."""


class UpstreamSyncError(GoalTrackerError):
    """The Notion API rejected a request or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
