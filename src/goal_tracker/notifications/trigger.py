# src/goal_tracker/notifications/trigger.py

"""
Notification fan-out.

One invocation:
- runs the overdue scan and/or the streak-milestone scan,
- sends one email per qualifying row via the injected EmailSender,
- appends an audit record only for emails that were actually sent.

A failing row is logged and skipped; it never aborts its siblings.
Only a missing email sender (setup error) fails the whole invocation; the sender
in place when a run starts serves that whole run.
Store calls run in a worker thread so the event loop never blocks on SQLite.
Running at most once per day is the scheduler's concern, not this module's.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from enum import StrEnum

from ..core.ports import EmailSender, NotificationRepo
from ..errors import AuthRequired, EmailSendError, NotificationSetupError, StoreError
from ..stats.streaks import DEFAULT_THRESHOLD
from ..tasks.task_models import NotificationRecord, NotificationType, UserSession
from .emails import overdue_email, streak_email

logger = logging.getLogger(__name__)


class NotificationKind(StrEnum):
    OVERDUE = "overdue"
    STREAKS = "streaks"
    MANUAL = "manual"

    @classmethod
    def parse(cls, raw: str | NotificationKind) -> NotificationKind:
        """Accepts both short names and the wire names (check_overdue / check_streaks)."""
        key = str(raw or "").strip().lower()
        aliases = {"check_overdue": cls.OVERDUE, "check_streaks": cls.STREAKS}
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown notification type: {raw!r}") from None


@dataclass(slots=True, frozen=True)
class TriggerResult:
    kind: NotificationKind
    sent: int
    failed: int = 0

    @property
    def message(self) -> str:
        return f"Successfully sent {self.sent} notifications"


class NotificationService:
    """Server-side handler behind the notification trigger."""

    def __init__(
        self,
        repo: NotificationRepo,
        sender: EmailSender | None,
        *,
        today: Callable[[], date] = date.today,
        streak_threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        self._repo = repo
        self._sender = sender
        self._today = today
        self._threshold = float(streak_threshold)

    @property
    def configured(self) -> bool:
        return self._sender is not None

    def today(self) -> date:
        return self._today()

    async def run(self, kind: NotificationKind | str) -> TriggerResult:
        kind = NotificationKind.parse(kind)
        sender = self._sender
        if sender is None:
            raise NotificationSetupError("Email delivery is not configured; no notifications can be sent.")

        today = self.today()
        sent = 0
        failed = 0

        if kind in (NotificationKind.OVERDUE, NotificationKind.MANUAL):
            s, f = await self._scan_overdue(sender, today)
            sent += s
            failed += f

        if kind in (NotificationKind.STREAKS, NotificationKind.MANUAL):
            s, f = await self._scan_streaks(sender, today)
            sent += s
            failed += f

        logger.info("Notification run kind=%s sent=%d failed=%d", kind.value, sent, failed)
        return TriggerResult(kind=kind, sent=sent, failed=failed)

    async def _scan_overdue(self, sender: EmailSender, today: date) -> tuple[int, int]:
        logger.debug("Checking for overdue tasks...")
        try:
            rows = await asyncio.to_thread(self._repo.get_overdue_tasks, today)
        except StoreError:
            logger.exception("Overdue tasks query failed")
            return 0, 0

        if not rows:
            logger.debug("No overdue tasks found")
            return 0, 0

        sent = failed = 0
        for row in rows:
            subject, html = overdue_email(row)
            ok = await self._deliver(
                sender,
                to=row.user_email,
                subject=subject,
                html=html,
                user_id=row.user_id,
                type=NotificationType.OVERDUE_TASK,
                task_id=row.task_id,
            )
            if ok:
                sent += 1
                logger.info("Sent overdue notification task_id=%s user=%s", row.task_id, row.user_id)
            else:
                failed += 1
        return sent, failed

    async def _scan_streaks(self, sender: EmailSender, today: date) -> tuple[int, int]:
        logger.debug("Checking for streak achievements...")
        try:
            rows = await asyncio.to_thread(self._repo.get_user_streaks, today, self._threshold)
        except StoreError:
            logger.exception("User streaks query failed")
            return 0, 0

        sent = failed = 0
        for row in rows:
            if not row.is_milestone:
                continue
            subject, html = streak_email(row, threshold=self._threshold)
            ok = await self._deliver(
                sender,
                to=row.user_email,
                subject=subject,
                html=html,
                user_id=row.user_id,
                type=NotificationType.STREAK_ACHIEVEMENT,
                streak_count=row.current_streak,
            )
            if ok:
                sent += 1
                logger.info("Sent streak notification user=%s days=%d", row.user_id, row.current_streak)
            else:
                failed += 1
        return sent, failed

    async def _deliver(
        self,
        sender: EmailSender,
        *,
        to: str,
        subject: str,
        html: str,
        user_id: str,
        type: NotificationType,
        task_id: str | None = None,
        streak_count: int | None = None,
    ) -> bool:
        try:
            await sender.send_email(to=to, subject=subject, html=html)
        except EmailSendError as e:
            logger.warning("Email send failed user=%s type=%s: %s", user_id, type.value, e)
            return False
        except Exception:
            logger.exception("Email send crashed user=%s type=%s", user_id, type.value)
            return False

        try:
            await asyncio.to_thread(
                self._repo.add_notification,
                user_id=user_id,
                type=type,
                email_subject=subject,
                email_body=html,
                task_id=task_id,
                streak_count=streak_count,
            )
        except StoreError:
            # The email already went out; it still counts as sent.
            logger.exception("Failed to record notification user=%s type=%s", user_id, type.value)
        return True


class NotificationTrigger:
    """Signed-in user's entry point: trigger a run and read the audit log."""

    def __init__(
        self,
        service: NotificationService,
        repo: NotificationRepo,
        session: UserSession | None,
    ) -> None:
        self._service = service
        self._repo = repo
        self._session = session

    def _user_id(self) -> str:
        if self._session is None or not self._session.user_id:
            raise AuthRequired("Please sign in to manage notifications.")
        return self._session.user_id

    async def trigger(self, kind: NotificationKind | str) -> TriggerResult:
        self._user_id()
        return await self._service.run(kind)

    def recent(self, limit: int = 10) -> list[NotificationRecord]:
        return self._repo.list_notifications(self._user_id(), limit=limit)
