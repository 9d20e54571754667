# src/goal_tracker/cli/commands.py

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..core.state import AppState
from ..errors import (
    AuthRequired,
    NotificationSetupError,
    StoreError,
    TaskNotFound,
    UpstreamSyncError,
)
from ..stats import streaks
from ..study.timer import TimerStateError, format_duration
from ..tasks.task_models import Task, UserSession

CommandEmitter = Callable[[str], None]
CommandHandler3 = Callable[[AppState, list[str], UserSession | None], str]
CommandHandler4 = Callable[[AppState, list[str], UserSession | None, CommandEmitter | None], str]
CommandHandler = CommandHandler3 | CommandHandler4

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        session: UserSession | None = None,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Expected failures (signed out, unknown task, bad input, upstream errors)
        become a one-line reply instead of an exception.
        """
        if not line.startswith("/"):
            return None

        head, _, rest = line[1:].partition(" ")
        name = head.strip().lower()
        if not name:
            return "Empty command. Use /help to list available commands."

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        args = rest.split()
        if name == "add":
            # Pipe-separated fields keep spaces inside titles.
            args = [rest] if rest.strip() else []

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 4

        try:
            if nparams >= 4:
                h4 = cast(CommandHandler4, handler)
                return h4(state, args, session, emit)
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, session)
        except AuthRequired as e:
            return f"{e} (set GOAL_CONSOLE_USER_ID to sign in from the console)"
        except TaskNotFound as e:
            return str(e)
        except StoreError:
            return "Task store unavailable, please retry."
        except TimerStateError as e:
            return str(e)
        except (NotificationSetupError, UpstreamSyncError) as e:
            return f"Error: {e}"
        except ValueError as e:
            return f"Invalid input: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _render_task(t: Task) -> str:
    mark = "x" if t.is_completed else " "
    return (
        f"[{mark}] {t.id[:8]} {t.title} ({t.date.isoformat()} {t.time}, "
        f"{t.priority.value}, {t.status.value}, due {t.deadline.isoformat()})"
    )


def _resolve_task_id(tasks: list[Task], prefix: str) -> str:
    """Accept a full id or a unique prefix, as printed by /tasks."""
    matches = [t.id for t in tasks if t.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise TaskNotFound(prefix)
    raise ValueError(f"ambiguous task id prefix {prefix!r}")


def cmd_help(
    state: AppState,
    args: list[str],
    session: UserSession | None,
    emit: CommandEmitter | None = None,
) -> str:
    return registry.build_help()


def cmd_tasks(state: AppState, args: list[str], session: UserSession | None) -> str:
    tasks = state.task_client(session).refresh()
    if not tasks:
        return "No tasks yet. Add one with /add."
    return "\n".join(["Tasks:"] + [f"  {_render_task(t)}" for t in tasks])


def cmd_today(state: AppState, args: list[str], session: UserSession | None) -> str:
    client = state.task_client(session)
    client.refresh()
    progress = client.today()
    lines = [f"Today ({progress.date.isoformat()}): {progress.completed}/{progress.total} done ({progress.percentage}%)"]
    lines.extend(f"  {_render_task(t)}" for t in progress.tasks)
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str], session: UserSession | None) -> str:
    """
    /add title | description | priority | date | time | deadline

    Only the title is required; empty fields keep their defaults.
    """
    if not args:
        return "Usage: /add title | description | priority | date | time | deadline"

    keys = ("title", "description", "priority", "date", "time", "deadline")
    values = [p.strip() for p in args[0].split("|")]
    fields = {k: v for k, v in zip(keys, values) if v}
    if "title" not in fields:
        return "A title is required."

    task = state.task_client(session).create(fields)
    return f"Added: {_render_task(task)}"


def cmd_done(state: AppState, args: list[str], session: UserSession | None) -> str:
    if not args:
        return "Usage: /done <task id>"
    client = state.task_client(session)
    client.refresh()
    task = client.toggle_status(_resolve_task_id(client.tasks, args[0]))
    return f"Now {task.status.value}: {task.title}"


def cmd_del(state: AppState, args: list[str], session: UserSession | None) -> str:
    if not args:
        return "Usage: /del <task id>"
    client = state.task_client(session)
    client.refresh()
    task_id = _resolve_task_id(client.tasks, args[0])
    client.delete(task_id)
    return f"Deleted {task_id[:8]}."


def cmd_habits(state: AppState, args: list[str], session: UserSession | None) -> str:
    client = state.task_client(session)
    client.refresh()
    habits = client.habits()
    if not habits:
        return "No habits yet."

    summary = streaks.summarize_habits(habits)
    lines = [
        f"Habits: {summary.active_streaks} active streak(s), "
        f"avg completion {summary.average_completion}%, best streak {summary.best_streak}d"
    ]
    for h in habits:
        lines.append(
            f"  {h.name} [{h.category}] {h.completed}/{h.target} ({h.completion_rate}%), "
            f"streak {h.streak}d, best {h.best_streak}d"
        )
    return "\n".join(lines)


def cmd_calendar(state: AppState, args: list[str], session: UserSession | None) -> str:
    days_n = int(getattr(state.settings, "calendar_days", streaks.CALENDAR_DAYS))
    if args:
        days_n = max(1, int(args[0]))
    threshold = float(getattr(state.settings, "streak_threshold", streaks.DEFAULT_THRESHOLD))

    client = state.task_client(session)
    client.refresh()
    days = client.calendar(days_n)
    summary = streaks.summarize_calendar(days, threshold)

    lines = [
        f"Last {days_n} days: current streak {summary.current_streak}d, best {summary.best_streak}d, "
        f"avg {summary.average_completion}%, {summary.total_completed} done, {summary.perfect_days} perfect day(s)"
    ]
    for d in days:
        if d.total:
            lines.append(f"  {d.date.isoformat()} {d.completed}/{d.total} ({d.rounded}%)")
    return "\n".join(lines)


def cmd_notify(
    state: AppState,
    args: list[str],
    session: UserSession | None,
    emit: CommandEmitter | None = None,
) -> str:
    """/notify [overdue|streaks|manual]"""
    kind = args[0] if args else "manual"
    if emit:
        emit(f"[NOTIFY] Running {kind} pass...")
    result = asyncio.run(state.notification_trigger(session).trigger(kind))
    if result.failed:
        return f"{result.message} ({result.failed} failed, see log)"
    return result.message


def cmd_notifications(state: AppState, args: list[str], session: UserSession | None) -> str:
    items = state.notification_trigger(session).recent(limit=10)
    if not items:
        return "No notifications sent yet."
    lines = ["Recent notifications:"]
    for n in items:
        lines.append(f"  {n.type.value}: {n.email_subject}")
    return "\n".join(lines)


def cmd_study(state: AppState, args: list[str], session: UserSession | None) -> str:
    """
    /study start <task id>
    /study pause | resume | reset | stop | status
    """
    if session is None:
        raise AuthRequired()

    timer = state.timer_for(session)
    sub = args[0].lower() if args else "status"

    if sub == "start":
        if len(args) < 2:
            return "Usage: /study start <task id>"
        client = state.task_client(session)
        client.refresh()
        task_id = _resolve_task_id(client.tasks, args[1])
        task = next(t for t in client.tasks if t.id == task_id)
        timer.start(task)
        return f"Studying: {task.title}"
    if sub == "pause":
        timer.pause()
        return f"Paused at {format_duration(timer.elapsed)}."
    if sub == "resume":
        timer.resume()
        return "Resumed."
    if sub == "reset":
        timer.reset()
        return "Timer reset to 0:00."
    if sub == "stop":
        finished = timer.stop()
        return f"Session saved: {finished.task_title} ({format_duration(finished.duration)})."
    if sub == "status":
        snap = timer.snapshot()
        line = f"Timer {snap['state']} {snap['elapsed_display']}"
        if snap["task_title"]:
            line += f" on {snap['task_title']}"
        return f"{line}. Total studied: {format_duration(timer.total_time())} in {snap['sessions']} session(s)."

    return "Usage: /study start <id> | pause | resume | reset | stop | status"


def cmd_notion(state: AppState, args: list[str], session: UserSession | None) -> str:
    if session is None:
        raise AuthRequired()
    tasks = state.notion.list_tasks()
    if not tasks:
        return "No tasks in the Notion database."
    lines = ["Notion tasks:"]
    for t in tasks:
        lines.append(f"  {t['title']} ({t['date']} {t['time']}, {t['priority']}, {t['status']})")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("tasks", cmd_tasks, help_text="List all tasks.", aliases=["ls"])
registry.register("today", cmd_today, help_text="Today's goals and progress.")
registry.register(
    "add", cmd_add, help_text="Add a task: /add title | description | priority | date | time | deadline."
)
registry.register("done", cmd_done, help_text="Toggle a task completed/pending: /done <id>.")
registry.register("del", cmd_del, help_text="Delete a task: /del <id>.", aliases=["rm"])
registry.register("habits", cmd_habits, help_text="Habit streaks grouped by title.")
registry.register("calendar", cmd_calendar, help_text="Daily completion history: /calendar [days].")
registry.register("notify", cmd_notify, help_text="Send notifications: /notify [overdue|streaks|manual].")
registry.register("notifications", cmd_notifications, help_text="Show recently sent notifications.")
registry.register(
    "study", cmd_study, help_text="Study timer: /study start <id> | pause | resume | reset | stop | status."
)
registry.register("notion", cmd_notion, help_text="List tasks from the Notion database.")
