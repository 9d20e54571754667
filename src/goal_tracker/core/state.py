# src/goal_tracker/core/state.py

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..notifications.trigger import NotificationService, NotificationTrigger
from ..notion.sync import NotionTaskSync
from ..study.timer import StudyTimer, TickerFactory, TimerTicker
from ..tasks.task_client import TaskStoreClient
from ..tasks.task_models import StudySession, UserSession
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """
    Application context handed to every connector (HTTP API, console).

    Holds shared services only; per-user views (task client, notification trigger,
    study timer) are built from it together with an explicit UserSession.
    """

    settings: Any
    task_store: TaskStore
    notifications: NotificationService
    notion: NotionTaskSync

    today: Callable[[], date] = date.today
    ticker_factory: TickerFactory | None = TimerTicker

    timers: dict[str, StudyTimer] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock)

    def task_client(self, session: UserSession | None) -> TaskStoreClient:
        return TaskStoreClient(self.task_store, session, today=self.today)

    def notification_trigger(self, session: UserSession | None) -> NotificationTrigger:
        return NotificationTrigger(self.notifications, self.task_store, session)

    def timer_for(self, session: UserSession) -> StudyTimer:
        """One process-local timer per user; finished sessions are also persisted."""
        user_id = session.user_id
        with self.lock:
            timer = self.timers.get(user_id)
            if timer is None:

                def persist(finished: StudySession) -> None:
                    self.task_store.save_study_session(user_id, finished)

                timer = StudyTimer(on_finish=persist, ticker_factory=self.ticker_factory)
                self.timers[user_id] = timer
            return timer

    def close(self) -> None:
        with self.lock:
            timers = list(self.timers.values())
        for timer in timers:
            timer.close()
        self.notion.close()
        self.task_store.close()
