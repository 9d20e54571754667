# tests/test_streaks.py

from __future__ import annotations

from datetime import date, timedelta

from goal_tracker.stats import streaks
from goal_tracker.tasks.task_models import Task, TaskPriority, TaskStatus

TODAY = date(2024, 6, 15)

_seq = 0


def make_task(
    title: str = "Read",
    *,
    days_ago: int = 0,
    status: TaskStatus = TaskStatus.COMPLETED,
    priority: TaskPriority = TaskPriority.MEDIUM,
) -> Task:
    global _seq
    _seq += 1
    day = TODAY - timedelta(days=days_ago)
    return Task(
        id=f"t{_seq}",
        user_id="u1",
        title=title,
        description=None,
        date=day,
        time="8:00 pm",
        priority=priority,
        status=status,
        deadline=day,
    )


def test_no_completed_tasks_means_no_streaks() -> None:
    tasks = [make_task(days_ago=i, status=TaskStatus.PENDING) for i in range(4)]
    assert streaks.current_streak(tasks, TODAY) == 0
    assert streaks.best_streak(tasks) == 0
    assert streaks.current_streak([], TODAY) == 0
    assert streaks.best_streak([]) == 0


def test_best_streak_counts_consecutive_days_and_resets_on_gap() -> None:
    run = [make_task(days_ago=d) for d in (2, 1, 0)]
    assert streaks.best_streak(run) == 3

    with_gap = [make_task(days_ago=d) for d in (10, 9, 6, 5, 4, 3)]
    assert streaks.best_streak(with_gap) == 4

    broken_tail = [make_task(days_ago=d) for d in (10, 9, 8, 3)]
    assert streaks.best_streak(broken_tail) == 3


def test_current_streak_grace_day_rule() -> None:
    assert streaks.current_streak([make_task(days_ago=0), make_task(days_ago=1)], TODAY) >= 2
    assert streaks.current_streak([make_task(days_ago=10)], TODAY) == 0
    # yesterday alone still counts (diff 1 <= 0 + 1)
    assert streaks.current_streak([make_task(days_ago=1)], TODAY) == 1


def test_calendar_day_without_tasks_is_zero_percent() -> None:
    days = streaks.build_calendar([make_task(days_ago=0)], TODAY, days=3)
    assert [d.date for d in days] == [TODAY - timedelta(days=2), TODAY - timedelta(days=1), TODAY]
    assert days[0].total == 0
    assert days[0].percentage == 0.0
    assert days[-1].rounded == 100


def test_habit_aggregation_by_title() -> None:
    tasks = [
        make_task("Read", days_ago=1, priority=TaskPriority.HIGH),
        make_task("Read", days_ago=0, status=TaskStatus.PENDING),
        make_task("Run", days_ago=0),
    ]
    habits = streaks.build_habits(tasks, TODAY)
    assert [h.name for h in habits] == ["Read", "Run"]

    read = habits[0]
    assert read.target == 2
    assert read.completed == 1
    assert read.completion == 50.0
    assert read.completion_rate == 50
    assert read.category == "High"

    summary = streaks.summarize_habits(habits)
    assert summary.active_streaks == 2
    assert summary.average_completion == 75
    assert summary.best_streak == 1


def test_habit_titles_are_case_sensitive() -> None:
    habits = streaks.build_habits([make_task("Read"), make_task("read")], TODAY)
    assert len(habits) == 2


def test_calendar_summary_streaks_and_perfect_days() -> None:
    tasks = [
        # 3 days ago: 1/2 -> 50%
        make_task(days_ago=3),
        make_task(days_ago=3, status=TaskStatus.PENDING),
        # 2 days ago .. today: 100%, 100%, 4/5 = 80%
        make_task(days_ago=2),
        make_task(days_ago=1),
        *[make_task(days_ago=0) for _ in range(4)],
        make_task(days_ago=0, status=TaskStatus.PENDING),
    ]
    days = streaks.build_calendar(tasks, TODAY, days=5)
    summary = streaks.summarize_calendar(days, 80.0)

    assert summary.current_streak == 3
    assert summary.best_streak == 3
    assert summary.perfect_days == 2
    assert summary.total_completed == 7
    # (0 + 50 + 100 + 100 + 80) / 5 = 66
    assert summary.average_completion == 66


def test_daily_goal_streak_stops_at_empty_or_weak_day() -> None:
    tasks = [make_task(days_ago=d) for d in range(0, 7)]
    assert streaks.daily_goal_streak(tasks, TODAY) == 7
    assert streaks.is_milestone(7)

    tasks.append(make_task(days_ago=2, status=TaskStatus.PENDING))
    tasks.append(make_task(days_ago=2, status=TaskStatus.PENDING))
    assert streaks.daily_goal_streak(tasks, TODAY) == 2

    assert streaks.daily_goal_streak([make_task(days_ago=1)], TODAY) == 0


def test_round_percent_rounds_half_up() -> None:
    assert streaks.round_percent(2.5) == 3
    assert streaks.round_percent(66.6) == 67
    assert streaks.round_percent(0.0) == 0
    assert streaks.percentage(1, 0) == 0.0


def test_todays_progress_and_pending() -> None:
    tasks = [
        make_task(days_ago=0),
        make_task(days_ago=0, status=TaskStatus.PENDING),
        make_task(days_ago=1, status=TaskStatus.OVERDUE),
    ]
    progress = streaks.todays_progress(tasks, TODAY)
    assert progress.total == 2
    assert progress.completed == 1
    assert progress.percentage == 50
    assert [t.status for t in streaks.pending_tasks(tasks)] == [TaskStatus.PENDING]
