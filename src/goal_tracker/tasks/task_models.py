# src/goal_tracker/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum

DEFAULT_TIME = "8:00 pm"


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - "overdue" is set by the daily overdue sweep, never by toggling.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    OVERDUE = "overdue"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.PENDING


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.MEDIUM


class NotificationType(StrEnum):
    OVERDUE_TASK = "overdue_task"
    STREAK_ACHIEVEMENT = "streak_achievement"


@dataclass(slots=True)
class Task:
    id: str
    user_id: str
    title: str
    description: str | None

    date: date
    time: str
    priority: TaskPriority
    status: TaskStatus
    deadline: date

    created_at: float = 0.0
    updated_at: float = 0.0

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "date": self.date.isoformat(),
            "time": self.time,
            "priority": self.priority.value,
            "status": self.status.value,
            "deadline": self.deadline.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class UserSession:
    """The signed-in user, passed explicitly to every component that needs it."""

    user_id: str
    email: str | None = None


@dataclass(slots=True)
class NotificationRecord:
    id: str
    user_id: str
    type: NotificationType
    task_id: str | None
    streak_count: int | None
    email_subject: str
    email_body: str
    sent_at: float


@dataclass(slots=True)
class StudySession:
    id: str
    task_id: str
    task_title: str
    start_time: datetime
    end_time: datetime | None = None
    duration: int = 0  # seconds
    is_active: bool = True


@dataclass(slots=True, frozen=True)
class OverdueTaskRow:
    task_id: str
    task_title: str
    deadline: date
    days_overdue: int
    user_id: str
    user_email: str


@dataclass(slots=True, frozen=True)
class UserStreakRow:
    user_id: str
    user_email: str
    current_streak: int
    is_milestone: bool
