# src/goal_tracker/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
import uuid
from collections.abc import Iterator
from datetime import date, datetime
from pathlib import Path
from typing import Any

from ..errors import StoreError, TaskNotFound
from ..stats.streaks import DEFAULT_THRESHOLD, daily_goal_streak, is_milestone
from .task_models import (
    DEFAULT_TIME,
    NotificationRecord,
    NotificationType,
    OverdueTaskRow,
    StudySession,
    Task,
    TaskPriority,
    TaskStatus,
    UserStreakRow,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"title", "description", "date", "time", "priority", "status", "deadline"})


def _new_id() -> str:
    return uuid.uuid4().hex


def to_date(value: Any) -> date:
    """Accept a date, a datetime or an ISO string ("2024-05-01" or "2024-05-01T...")."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value or "").strip()
    if not raw:
        raise ValueError("date is required")
    return date.fromisoformat(raw[:10])


def _parse_stored_date(raw: str | None, *, column: str, row_id: str) -> date:
    try:
        return to_date(raw)
    except ValueError:
        logger.warning("Bad %s=%r in task %s; using today.", column, raw, row_id)
        return date.today()


class TaskStore:
    """
    SQLite store for tasks, the notification audit log and study sessions.

    Every per-row operation is scoped by user_id; a task owned by another user
    behaves exactly like a missing one.

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "goals.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except StoreError:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Short-lived connection; commits on success, maps sqlite errors to StoreError."""
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open database {self._db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            with contextlib.suppress(sqlite3.Error):
                conn.rollback()
            raise StoreError(f"Database error: {e}") from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    date TEXT NOT NULL,
                    time TEXT NOT NULL DEFAULT '8:00 pm',
                    priority TEXT NOT NULL DEFAULT 'medium',
                    status TEXT NOT NULL DEFAULT 'pending',
                    deadline TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS notifications (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    task_id TEXT,
                    streak_count INTEGER,
                    email_subject TEXT NOT NULL,
                    email_body TEXT NOT NULL,
                    sent_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS study_sessions (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    task_id TEXT NOT NULL,
                    task_title TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    end_time TEXT,
                    duration INTEGER NOT NULL DEFAULT 0,
                    is_active INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL
                )
                """
            )

            # Migrations (safe): add missing task columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("description", "TEXT")
            add_col("time", "TEXT NOT NULL DEFAULT '8:00 pm'")
            add_col("priority", "TEXT NOT NULL DEFAULT 'medium'")
            add_col("status", "TEXT NOT NULL DEFAULT 'pending'")
            add_col("deadline", "TEXT NOT NULL DEFAULT ''")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user_date ON tasks(user_id, date)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_status_deadline ON tasks(status, deadline)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_notifications_user_sent ON notifications(user_id, sent_at)"
            )

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        task_id = str(row["id"])
        return Task(
            id=task_id,
            user_id=str(row["user_id"]),
            title=str(row["title"] or ""),
            description=row["description"],
            date=_parse_stored_date(row["date"], column="date", row_id=task_id),
            time=str(row["time"] or DEFAULT_TIME),
            priority=TaskPriority.from_db(row["priority"]),
            status=TaskStatus.from_db(row["status"]),
            deadline=_parse_stored_date(row["deadline"], column="deadline", row_id=task_id),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    @staticmethod
    def _row_to_notification(row: sqlite3.Row) -> NotificationRecord:
        return NotificationRecord(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            type=NotificationType(row["type"]),
            task_id=row["task_id"],
            streak_count=int(row["streak_count"]) if row["streak_count"] is not None else None,
            email_subject=str(row["email_subject"]),
            email_body=str(row["email_body"]),
            sent_at=float(row["sent_at"]),
        )

    @staticmethod
    def _normalize_field(name: str, value: Any) -> Any:
        if name == "title":
            title = str(value or "").strip()
            if not title:
                raise ValueError("title is required")
            return title
        if name == "description":
            return None if value is None else str(value)
        if name in ("date", "deadline"):
            return to_date(value).isoformat()
        if name == "time":
            return str(value or "").strip() or DEFAULT_TIME
        if name == "priority":
            return TaskPriority(str(value).strip().lower()).value
        if name == "status":
            return TaskStatus(str(value).strip().lower()).value
        raise ValueError(f"Unknown task field: {name}")

    # ---- users ----

    def upsert_user(self, user_id: str, email: str | None) -> None:
        if not user_id:
            raise ValueError("user_id is required")
        now = time.time()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users(id, email, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    email = COALESCE(excluded.email, users.email),
                    updated_at = excluded.updated_at
                """,
                (user_id, email, now, now),
            )

    # ---- tasks ----

    def count_tasks(self) -> int:
        with self._connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def list_tasks(self, user_id: str) -> list[Task]:
        """All tasks of one user, ordered by scheduled date ascending."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE user_id = ? ORDER BY date ASC, created_at ASC",
                (user_id,),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def get_task(self, user_id: str, task_id: str) -> Task:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ? AND user_id = ?",
                (task_id, user_id),
            ).fetchone()
        if row is None:
            raise TaskNotFound(task_id)
        return self._row_to_task(row)

    def add_task(
        self,
        user_id: str,
        *,
        title: str,
        description: str | None = None,
        date: date | str | None = None,
        time: str = DEFAULT_TIME,
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        status: TaskStatus | str = TaskStatus.PENDING,
        deadline: date | str | None = None,
    ) -> Task:
        if not user_id:
            raise ValueError("user_id is required")

        today = _today()
        values = {
            "title": self._normalize_field("title", title),
            "description": self._normalize_field("description", description),
            "date": self._normalize_field("date", date if date is not None else today),
            "time": self._normalize_field("time", time),
            "priority": self._normalize_field("priority", priority),
            "status": self._normalize_field("status", status),
            "deadline": self._normalize_field("deadline", deadline if deadline is not None else today),
        }

        task_id = _new_id()
        now = _now()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO tasks(
                    id, user_id, title, description, date, time,
                    priority, status, deadline, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task_id,
                    user_id,
                    values["title"],
                    values["description"],
                    values["date"],
                    values["time"],
                    values["priority"],
                    values["status"],
                    values["deadline"],
                    now,
                    now,
                ),
            )
        logger.debug("Task added id=%s user=%s date=%s", task_id, user_id, values["date"])
        return self.get_task(user_id, task_id)

    def update_task(self, user_id: str, task_id: str, **fields: Any) -> Task:
        """Update only the given columns; unknown columns are rejected."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown task field(s): {', '.join(sorted(unknown))}")

        sets: list[str] = []
        params: list[Any] = []
        for name in sorted(fields):
            sets.append(f"{name} = ?")
            params.append(self._normalize_field(name, fields[name]))

        if not sets:
            return self.get_task(user_id, task_id)

        sets.append("updated_at = ?")
        params.append(_now())
        params.extend([task_id, user_id])

        sql = f"UPDATE tasks SET {', '.join(sets)} WHERE id = ? AND user_id = ?"
        with self._connect() as conn:
            cur = conn.execute(sql, params)
            if cur.rowcount == 0:
                raise TaskNotFound(task_id)
        return self.get_task(user_id, task_id)

    def delete_task(self, user_id: str, task_id: str) -> None:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ? AND user_id = ?", (task_id, user_id))
            if cur.rowcount == 0:
                raise TaskNotFound(task_id)
        logger.debug("Task deleted id=%s user=%s", task_id, user_id)

    def mark_overdue(self, today: date | None = None) -> int:
        """Flip pending tasks whose deadline has passed to 'overdue'. Returns rows changed."""
        if today is None:
            today = _today()
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE tasks
                SET status = 'overdue', updated_at = ?
                WHERE status = 'pending' AND deadline < ?
                """,
                (_now(), today.isoformat()),
            )
            changed = cur.rowcount
        if changed:
            logger.info("Marked %d task(s) overdue", changed)
        return changed

    # ---- server-side queries (all users) ----

    def get_overdue_tasks(self, today: date | None = None) -> list[OverdueTaskRow]:
        """Tasks of every user with a deadline before today that are not completed."""
        if today is None:
            today = _today()
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT t.id, t.title, t.deadline, t.user_id, u.email
                FROM tasks t
                JOIN users u ON u.id = t.user_id
                WHERE t.status != 'completed'
                  AND t.deadline < ?
                  AND u.email IS NOT NULL AND u.email != ''
                ORDER BY t.deadline ASC, t.created_at ASC
                """,
                (today.isoformat(),),
            ).fetchall()

        out: list[OverdueTaskRow] = []
        for r in rows:
            deadline = _parse_stored_date(r["deadline"], column="deadline", row_id=str(r["id"]))
            days = (today - deadline).days
            if days < 1:
                continue
            out.append(
                OverdueTaskRow(
                    task_id=str(r["id"]),
                    task_title=str(r["title"]),
                    deadline=deadline,
                    days_overdue=days,
                    user_id=str(r["user_id"]),
                    user_email=str(r["email"]),
                )
            )
        return out

    def get_user_streaks(
        self,
        today: date | None = None,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[UserStreakRow]:
        """Current daily-goal streak of every user that has an email address."""
        if today is None:
            today = _today()
        with self._connect() as conn:
            users = conn.execute(
                "SELECT id, email FROM users WHERE email IS NOT NULL AND email != '' ORDER BY id"
            ).fetchall()

        out: list[UserStreakRow] = []
        for u in users:
            tasks = self.list_tasks(str(u["id"]))
            streak = daily_goal_streak(tasks, today, threshold)
            out.append(
                UserStreakRow(
                    user_id=str(u["id"]),
                    user_email=str(u["email"]),
                    current_streak=streak,
                    is_milestone=is_milestone(streak),
                )
            )
        return out

    # ---- notification audit log ----

    def add_notification(
        self,
        *,
        user_id: str,
        type: NotificationType,
        email_subject: str,
        email_body: str,
        task_id: str | None = None,
        streak_count: int | None = None,
    ) -> NotificationRecord:
        record = NotificationRecord(
            id=_new_id(),
            user_id=user_id,
            type=NotificationType(type),
            task_id=task_id,
            streak_count=streak_count,
            email_subject=email_subject,
            email_body=email_body,
            sent_at=_now(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO notifications(
                    id, user_id, type, task_id, streak_count,
                    email_subject, email_body, sent_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.user_id,
                    record.type.value,
                    record.task_id,
                    record.streak_count,
                    record.email_subject,
                    record.email_body,
                    record.sent_at,
                ),
            )
        return record

    def list_notifications(self, user_id: str, limit: int = 10) -> list[NotificationRecord]:
        """Newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM notifications
                WHERE user_id = ?
                ORDER BY sent_at DESC, rowid DESC
                    LIMIT ?
                """,
                (user_id, int(limit)),
            ).fetchall()
            return [self._row_to_notification(r) for r in rows]

    def count_notifications(self) -> int:
        with self._connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM notifications").fetchone()
            return int(n)

    # ---- study sessions ----

    def save_study_session(self, user_id: str, session: StudySession) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO study_sessions(
                    id, user_id, task_id, task_title, start_time, end_time,
                    duration, is_active, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    user_id,
                    session.task_id,
                    session.task_title,
                    session.start_time.isoformat(),
                    session.end_time.isoformat() if session.end_time else None,
                    int(session.duration),
                    1 if session.is_active else 0,
                    _now(),
                ),
            )

    def list_study_sessions(self, user_id: str, limit: int = 50) -> list[StudySession]:
        """Newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM study_sessions
                WHERE user_id = ?
                ORDER BY start_time DESC
                    LIMIT ?
                """,
                (user_id, int(limit)),
            ).fetchall()
        return [
            StudySession(
                id=str(r["id"]),
                task_id=str(r["task_id"]),
                task_title=str(r["task_title"]),
                start_time=datetime.fromisoformat(r["start_time"]),
                end_time=datetime.fromisoformat(r["end_time"]) if r["end_time"] else None,
                duration=int(r["duration"] or 0),
                is_active=bool(r["is_active"]),
            )
            for r in rows
        ]


def _now() -> float:
    return time.time()


def _today() -> date:
    return date.today()
