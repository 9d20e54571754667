# src/goal_tracker/tasks/task_client.py

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import date
from typing import Any

from ..core.ports import TaskRepo
from ..errors import AuthRequired, StoreError
from ..stats import streaks
from .task_models import Task, TaskStatus, UserSession

logger = logging.getLogger(__name__)


class TaskStoreClient:
    """
    The signed-in user's view of the task store.

    `tasks` is the only state held here and every derived view is computed from it.
    Each mutation is followed by a full re-fetch (no incremental patching), so the
    list always mirrors the store.

    On StoreError the exception is re-raised and `tasks` keeps its previous value.
    """

    def __init__(
        self,
        repo: TaskRepo,
        session: UserSession | None,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._repo = repo
        self._session = session
        self._today = today
        self.tasks: list[Task] = []

    @property
    def session(self) -> UserSession | None:
        return self._session

    def _user_id(self) -> str:
        if self._session is None or not self._session.user_id:
            raise AuthRequired()
        return self._session.user_id

    # ---- reads ----

    def refresh(self) -> list[Task]:
        user_id = self._user_id()
        try:
            fetched = self._repo.list_tasks(user_id)
        except StoreError:
            logger.exception("Failed to fetch tasks user=%s", user_id)
            raise
        self.tasks = list(fetched)
        return self.tasks

    def list(self) -> list[Task]:
        return self.refresh()

    # ---- mutations ----

    def create(self, fields: Mapping[str, Any]) -> Task:
        user_id = self._user_id()
        try:
            task = self._repo.add_task(user_id, **dict(fields))
        except StoreError:
            logger.exception("Failed to create task user=%s", user_id)
            raise
        self.refresh()
        logger.info("Task created id=%s user=%s", task.id, user_id)
        return task

    def update(self, task_id: str, fields: Mapping[str, Any]) -> Task:
        user_id = self._user_id()
        try:
            task = self._repo.update_task(user_id, task_id, **dict(fields))
        except StoreError:
            logger.exception("Failed to update task id=%s user=%s", task_id, user_id)
            raise
        self.refresh()
        return task

    def delete(self, task_id: str) -> None:
        user_id = self._user_id()
        try:
            self._repo.delete_task(user_id, task_id)
        except StoreError:
            logger.exception("Failed to delete task id=%s user=%s", task_id, user_id)
            raise
        self.refresh()

    def toggle_status(self, task_id: str) -> Task:
        """completed -> pending, anything else -> completed. Only `status` changes."""
        user_id = self._user_id()
        # Read the stored row; the cached list may predate another client's write.
        current = self._repo.get_task(user_id, task_id)
        new_status = TaskStatus.PENDING if current.status == TaskStatus.COMPLETED else TaskStatus.COMPLETED
        return self.update(task_id, {"status": new_status})

    # ---- derived views (recomputed on every call) ----

    def today(self) -> streaks.DailyProgress:
        return streaks.todays_progress(self.tasks, self._today())

    def habits(self) -> list[streaks.Habit]:
        return streaks.build_habits(self.tasks, self._today())

    def calendar(self, days: int = streaks.CALENDAR_DAYS) -> list[streaks.CalendarDay]:
        return streaks.build_calendar(self.tasks, self._today(), days)

    def pending(self) -> list[Task]:
        return streaks.pending_tasks(self.tasks)
