# src/goal_tracker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store/email/Notion).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import EmailSender
from ..core.state import AppState
from ..errors import NotificationSetupError
from ..notifications.resend_client import ResendEmailSender
from ..notifications.trigger import NotificationService
from ..notion.sync import NotionTaskSync
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_email_sender(settings) -> EmailSender | None:
    """Resend sender, or None when no API key is configured (notifications then fail fast)."""
    try:
        return ResendEmailSender(
            settings.resend_api_key,
            sender=settings.email_from,
            base_url=settings.resend_base_url,
            timeout_seconds=settings.http_timeout_seconds,
        )
    except NotificationSetupError:
        logger.info("Email delivery not configured; notification triggers will be rejected.")
        return None


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = TaskStore(settings.tasks_db_path)
    notion = NotionTaskSync(
        settings.notion_token,
        settings.notion_database_id,
        base_url=settings.notion_base_url,
        notion_version=settings.notion_version,
        timeout_seconds=settings.http_timeout_seconds,
    )
    if not notion.configured:
        logger.info("Notion sync not configured.")

    return AppState(
        settings=settings,
        task_store=store,
        notifications=NotificationService(
            store,
            build_email_sender(settings),
            streak_threshold=settings.streak_threshold,
        ),
        notion=notion,
    )
