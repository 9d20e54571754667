# src/goal_tracker/stats/streaks.py

"""
Streak, habit and calendar derivations.

Everything here is a pure function of the task list and `today`:
no I/O, no cached aggregates. Views call these on every refresh.

Two different notions of "streak" live side by side:
- completion streaks (current_streak / best_streak) count completed tasks
  by their scheduled date;
- daily-goal streaks (calendar_* / daily_goal_streak) count calendar days whose
  completion percentage reaches a threshold (80% by default).
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from ..tasks.task_models import Task, TaskStatus

MILESTONES: tuple[int, ...] = (7, 14, 30, 60, 90, 180, 365)
DEFAULT_THRESHOLD = 80.0
CALENDAR_DAYS = 30


def round_percent(value: float) -> int:
    """Round half up (2.5 -> 3), the way percentages are displayed."""
    return int(math.floor(value + 0.5))


def percentage(completed: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return completed / total * 100.0


def is_milestone(streak: int) -> bool:
    return streak in MILESTONES


def _completed(tasks: Iterable[Task]) -> list[Task]:
    return [t for t in tasks if t.status == TaskStatus.COMPLETED]


def _by_date(tasks: Iterable[Task]) -> dict[date, list[Task]]:
    buckets: dict[date, list[Task]] = defaultdict(list)
    for t in tasks:
        buckets[t.date].append(t)
    return buckets


# ---- completion streaks ----


def current_streak(tasks: Iterable[Task], today: date | None = None) -> int:
    """
    Walk completed tasks newest first and keep counting while each one is at most
    `streak + 1` days before today.

    This is a lenient approximation, not a strict consecutive-day check:
    several completions on the same recent day all count.
    """
    if today is None:
        today = date.today()

    done = sorted(_completed(tasks), key=lambda t: t.date, reverse=True)

    streak = 0
    for t in done:
        diff_days = (today - t.date).days
        if diff_days <= streak + 1:
            streak += 1
        else:
            break
    return streak


def best_streak(tasks: Iterable[Task]) -> int:
    """Longest run of completed task dates exactly one day apart."""
    dates = sorted(t.date for t in _completed(tasks))

    best = 0
    run = 0
    prev: date | None = None
    for d in dates:
        if prev is None:
            run = 1
        elif (d - prev).days == 1:
            run += 1
        else:
            best = max(best, run)
            run = 1
        prev = d

    return max(best, run)


# ---- habits ----


@dataclass(slots=True, frozen=True)
class Habit:
    id: str
    name: str
    target: int
    completed: int
    streak: int
    best_streak: int
    category: str

    @property
    def completion(self) -> float:
        return percentage(self.completed, self.target)

    @property
    def completion_rate(self) -> int:
        return round_percent(self.completion)


@dataclass(slots=True, frozen=True)
class HabitSummary:
    active_streaks: int
    average_completion: int
    best_streak: int


def build_habits(tasks: Sequence[Task], today: date | None = None) -> list[Habit]:
    """
    Group tasks by exact title (case-sensitive) into habits, in first-seen order.

    The category is the capitalized priority of the first task of the group.
    """
    if today is None:
        today = date.today()

    groups: dict[str, list[Task]] = {}
    for t in tasks:
        groups.setdefault(t.title, []).append(t)

    habits: list[Habit] = []
    for title, group in groups.items():
        habits.append(
            Habit(
                id=title,
                name=title,
                target=len(group),
                completed=len(_completed(group)),
                streak=current_streak(group, today),
                best_streak=best_streak(group),
                category=group[0].priority.value.capitalize(),
            )
        )
    return habits


def summarize_habits(habits: Sequence[Habit]) -> HabitSummary:
    if not habits:
        return HabitSummary(active_streaks=0, average_completion=0, best_streak=0)

    avg = sum(h.completion for h in habits) / len(habits)
    return HabitSummary(
        active_streaks=sum(1 for h in habits if h.streak > 0),
        average_completion=round_percent(avg),
        best_streak=max(h.best_streak for h in habits),
    )


# ---- calendar ----


@dataclass(slots=True, frozen=True)
class CalendarDay:
    date: date
    completed: int
    total: int
    percentage: float

    @property
    def rounded(self) -> int:
        return round_percent(self.percentage)


@dataclass(slots=True, frozen=True)
class CalendarSummary:
    current_streak: int
    best_streak: int
    average_completion: int
    total_completed: int
    perfect_days: int


def build_calendar(
    tasks: Iterable[Task],
    today: date | None = None,
    days: int = CALENDAR_DAYS,
) -> list[CalendarDay]:
    """Trailing window of `days` calendar days ending with today, oldest first."""
    if today is None:
        today = date.today()

    buckets = _by_date(tasks)
    out: list[CalendarDay] = []
    for offset in range(max(0, days) - 1, -1, -1):
        day = today - timedelta(days=offset)
        day_tasks = buckets.get(day, [])
        total = len(day_tasks)
        completed = len(_completed(day_tasks))
        out.append(
            CalendarDay(
                date=day,
                completed=completed,
                total=total,
                percentage=percentage(completed, total),
            )
        )
    return out


def calendar_current_streak(days: Sequence[CalendarDay], threshold: float = DEFAULT_THRESHOLD) -> int:
    streak = 0
    for day in reversed(days):
        if day.percentage >= threshold:
            streak += 1
        else:
            break
    return streak


def calendar_best_streak(days: Sequence[CalendarDay], threshold: float = DEFAULT_THRESHOLD) -> int:
    best = 0
    run = 0
    for day in days:
        if day.percentage >= threshold:
            run += 1
            best = max(best, run)
        else:
            run = 0
    return best


def summarize_calendar(days: Sequence[CalendarDay], threshold: float = DEFAULT_THRESHOLD) -> CalendarSummary:
    avg = sum(d.percentage for d in days) / len(days) if days else 0.0
    return CalendarSummary(
        current_streak=calendar_current_streak(days, threshold),
        best_streak=calendar_best_streak(days, threshold),
        average_completion=round_percent(avg),
        total_completed=sum(d.completed for d in days),
        perfect_days=sum(1 for d in days if d.percentage == 100.0),
    )


def daily_goal_streak(
    tasks: Iterable[Task],
    today: date | None = None,
    threshold: float = DEFAULT_THRESHOLD,
) -> int:
    """
    Consecutive days, walking back from today, on which at least `threshold` percent
    of the scheduled tasks were completed. Not bounded by the calendar window.
    """
    if today is None:
        today = date.today()

    buckets = _by_date(tasks)
    streak = 0
    day = today
    while True:
        day_tasks = buckets.get(day)
        if not day_tasks:
            break
        if percentage(len(_completed(day_tasks)), len(day_tasks)) < threshold:
            break
        streak += 1
        day -= timedelta(days=1)
    return streak


# ---- today ----


@dataclass(slots=True, frozen=True)
class DailyProgress:
    date: date
    tasks: tuple[Task, ...]
    completed: int
    total: int

    @property
    def percentage(self) -> int:
        return round_percent(percentage(self.completed, self.total))


def todays_progress(tasks: Iterable[Task], today: date | None = None) -> DailyProgress:
    if today is None:
        today = date.today()
    todays = tuple(t for t in tasks if t.date == today)
    return DailyProgress(
        date=today,
        tasks=todays,
        completed=len(_completed(todays)),
        total=len(todays),
    )


def pending_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Tasks that can be picked for a study session."""
    return [t for t in tasks if t.status == TaskStatus.PENDING]
