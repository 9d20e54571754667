# src/goal_tracker/notifications/scheduler.py

from __future__ import annotations

"""
Notification scheduler.

A small polling loop that, once per interval:
- flips pending tasks past their deadline to 'overdue' (using the service's clock),
- runs a full ('manual') notification pass.

One pass per interval (a day by default) is what keeps a user from getting the
same overdue reminder twice on the same day.
"""

import asyncio
import logging

from ..core.ports import NotificationRepo
from ..errors import NotificationSetupError
from .trigger import NotificationKind, NotificationService

logger = logging.getLogger(__name__)


async def run_notification_scheduler(
    service: NotificationService,
    repo: NotificationRepo,
    *,
    interval_seconds: float = 86400.0,
    kind: NotificationKind = NotificationKind.MANUAL,
) -> None:
    """
    Run notification passes forever.

    To stop the scheduler, cancel the coroutine/task.
    A setup error (no email sender) stops the loop: retrying cannot fix it.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            await asyncio.to_thread(repo.mark_overdue, service.today())
        except Exception:
            logger.exception("mark_overdue failed")

        try:
            result = await service.run(kind)
            logger.info("Scheduled notification pass sent=%d failed=%d", result.sent, result.failed)
        except NotificationSetupError:
            logger.exception("Notification scheduler disabled: email delivery is not configured")
            return
        except Exception:
            logger.exception("Scheduled notification pass failed")

        await asyncio.sleep(sleep_s)
