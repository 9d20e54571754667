# src/goal_tracker/study/timer.py

from __future__ import annotations

"""
Study timer.

State machine:
    idle --start--> running --pause--> paused --resume--> running
    running/paused --stop--> idle      (session archived into history)
    running/paused --reset-> same state, elapsed = 0, session kept

Elapsed time advances only through tick(), one whole second per call.
A TimerTicker calls tick() at wall-clock cadence while the timer runs; the ticker is
cancelled on pause, stop and close() so no background thread outlives its session.
"""

import logging
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from enum import StrEnum

from ..tasks.task_models import StudySession, Task, TaskStatus

logger = logging.getLogger(__name__)


class TimerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class TimerStateError(RuntimeError):
    """The requested transition is not valid in the current state."""


def format_duration(seconds: int) -> str:
    """1:02:03 with hours, 2:03 without."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


class TimerTicker:
    """Daemon thread that calls `tick` once per `interval` seconds until cancelled."""

    def __init__(self, tick: Callable[[], None], *, interval: float = 1.0) -> None:
        self._tick = tick
        self._interval = float(interval)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.set()
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            args=(self._stop,),
            name="study-timer-ticker",
            daemon=True,
        )
        self._thread.start()

    def _run(self, stop: threading.Event) -> None:
        next_at = time.monotonic() + self._interval
        while not stop.wait(max(0.0, next_at - time.monotonic())):
            try:
                self._tick()
            except Exception:
                logger.exception("Study timer tick failed")
            next_at += self._interval

    def halt(self) -> threading.Thread | None:
        """Signal the current thread to stop and forget it; the caller may join the result.

        A later start() always gets a fresh thread and stop event, so halting one
        generation never stops the next.
        """
        self._stop.set()
        thread = self._thread
        self._thread = None
        return thread

    def cancel(self) -> None:
        join_ticker(self.halt())


def join_ticker(thread: threading.Thread | None) -> None:
    if thread is not None and thread is not threading.current_thread():
        thread.join(timeout=2.0)


TickerFactory = Callable[[Callable[[], None]], TimerTicker]


class StudyTimer:
    """
    One user's study timer plus the history of finished sessions (most recent first).

    Without a ticker_factory nothing ticks on its own; callers drive tick().
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now().astimezone(),
        on_finish: Callable[[StudySession], None] | None = None,
        ticker_factory: TickerFactory | None = None,
    ) -> None:
        self._clock = clock
        self._on_finish = on_finish
        self._lock = threading.RLock()
        self._ticker = ticker_factory(self.tick) if ticker_factory is not None else None

        self.state = TimerState.IDLE
        self.session: StudySession | None = None
        self.elapsed = 0
        self.history: list[StudySession] = []

    # ---- transitions ----

    def start(self, task: Task) -> StudySession:
        with self._lock:
            if self.state != TimerState.IDLE:
                raise TimerStateError("A study session is already in progress.")
            if task.status != TaskStatus.PENDING:
                raise ValueError("Only pending tasks can be studied.")

            self.session = StudySession(
                id=uuid.uuid4().hex,
                task_id=task.id,
                task_title=task.title,
                start_time=self._clock(),
            )
            self.elapsed = 0
            self.state = TimerState.RUNNING
            self._start_ticking()
            logger.info("Study session started task_id=%s", task.id)
            return self.session

    def pause(self) -> None:
        with self._lock:
            if self.state != TimerState.RUNNING:
                raise TimerStateError("The timer is not running.")
            self.state = TimerState.PAUSED
            retired = self._halt_ticking()
        # Joined outside the lock: the ticker thread may be waiting on it inside tick().
        self._join_ticker(retired)

    def resume(self) -> None:
        with self._lock:
            if self.state != TimerState.PAUSED:
                raise TimerStateError("The timer is not paused.")
            self.state = TimerState.RUNNING
            self._start_ticking()

    def reset(self) -> None:
        with self._lock:
            if self.session is None:
                raise TimerStateError("No active study session.")
            self.elapsed = 0
            self.session = replace(self.session, start_time=self._clock())

    def stop(self) -> StudySession:
        with self._lock:
            if self.session is None:
                raise TimerStateError("No active study session.")

            finished = replace(
                self.session,
                end_time=self._clock(),
                duration=self.elapsed,
                is_active=False,
            )
            self.history.insert(0, finished)
            self.session = None
            self.elapsed = 0
            self.state = TimerState.IDLE
            retired = self._halt_ticking()
        self._join_ticker(retired)

        logger.info(
            "Study session finished task_id=%s duration=%s",
            finished.task_id,
            format_duration(finished.duration),
        )
        if self._on_finish is not None:
            try:
                self._on_finish(finished)
            except Exception:
                logger.exception("Failed to persist study session id=%s", finished.id)
        return finished

    def tick(self) -> None:
        with self._lock:
            if self.state == TimerState.RUNNING:
                self.elapsed += 1

    def close(self) -> None:
        """Tear down: stop the background tick without touching the session."""
        with self._lock:
            retired = self._halt_ticking()
        self._join_ticker(retired)

    # ---- ticker ----

    def _start_ticking(self) -> None:
        if self._ticker is not None:
            self._ticker.start()

    def _halt_ticking(self) -> threading.Thread | None:
        if self._ticker is None:
            return None
        return self._ticker.halt()

    def _join_ticker(self, thread: threading.Thread | None) -> None:
        join_ticker(thread)

    # ---- stats ----

    def total_time(self) -> int:
        return sum(s.duration for s in self.history)

    def time_for_task(self, task_id: str) -> int:
        return sum(s.duration for s in self.history if s.task_id == task_id)

    def snapshot(self) -> dict[str, object]:
        with self._lock:
            current = self.session
            return {
                "state": self.state.value,
                "elapsed": self.elapsed,
                "elapsed_display": format_duration(self.elapsed),
                "task_id": current.task_id if current else None,
                "task_title": current.task_title if current else None,
                "started_at": current.start_time.isoformat() if current else None,
                "total_time": self.total_time(),
                "sessions": len(self.history),
            }
