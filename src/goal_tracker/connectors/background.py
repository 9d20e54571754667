# src/goal_tracker/connectors/background.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

import uvicorn

from ..api.app import create_app
from ..core.state import AppState
from ..notifications.scheduler import run_notification_scheduler

logger = logging.getLogger(__name__)


@dataclass
class SchedulerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    task: asyncio.Task

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.task.cancel)
        except Exception:
            logger.debug("Failed to signal scheduler stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_scheduler_in_background(state: AppState) -> SchedulerBackgroundRunner | None:
    """
    Run the notification scheduler in its own thread and event loop.

    The console REPL blocks on input(), so the polling loop cannot share the main thread.
    """
    settings = state.settings
    if not getattr(settings, "notify_scheduler_enabled", False):
        logger.info("Notification scheduler disabled, not starting.")
        return None
    if not state.notifications.configured:
        logger.warning("Notification scheduler enabled but email delivery is not configured; not starting.")
        return None

    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        task = loop.create_task(
            run_notification_scheduler(
                state.notifications,
                state.task_store,
                interval_seconds=float(getattr(settings, "notify_interval_seconds", 86400.0)),
            )
        )

        holder["loop"] = loop
        holder["task"] = task
        ready.set()

        try:
            with contextlib.suppress(asyncio.CancelledError):
                loop.run_until_complete(task)
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="notification-scheduler", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    task = holder.get("task")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(task, asyncio.Task):
        logger.error("Scheduler thread did not initialize properly.")
        return None

    logger.info("Notification scheduler started (interval=%ss).", settings.notify_interval_seconds)
    return SchedulerBackgroundRunner(thread=t, loop=loop, task=task)


@dataclass
class ApiBackgroundRunner:
    thread: threading.Thread
    server: uvicorn.Server

    def stop(self) -> None:
        self.server.should_exit = True

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_api_in_background(state: AppState) -> ApiBackgroundRunner | None:
    """Serve the HTTP API with uvicorn in a background thread."""
    settings = state.settings
    if not getattr(settings, "api_enabled", False):
        logger.info("HTTP API disabled, not starting.")
        return None

    config = uvicorn.Config(
        create_app(state),
        host=settings.api_host,
        port=int(settings.api_port),
        log_config=None,
        lifespan="off",
    )
    server = uvicorn.Server(config)

    def runner() -> None:
        try:
            server.run()
        except Exception:
            logger.exception("HTTP API server crashed.")

    t = threading.Thread(target=runner, name="http-api", daemon=True)
    t.start()

    logger.info("HTTP API listening on http://%s:%d", settings.api_host, settings.api_port)
    return ApiBackgroundRunner(thread=t, server=server)
