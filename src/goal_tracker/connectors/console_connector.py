# src/goal_tracker/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.task_models import UserSession

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    try:
        if sys.stdout.isatty():
            sys.stdout.write("\033[1A\033[2K\r")
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
        else:
            print(line)
    except OSError:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def console_session(state: AppState) -> UserSession | None:
    """The console acts as the user named in settings; without one it stays signed out."""
    settings = state.settings
    user_id = (getattr(settings, "console_user_id", None) or "").strip()
    if not user_id:
        return None
    email = (getattr(settings, "console_user_email", None) or "").strip() or None
    state.task_store.upsert_user(user_id, email)
    return UserSession(user_id=user_id, email=email)


def run_console_loop(state: AppState) -> None:
    session = console_session(state)
    logger.info("Console connector started (user=%s).", session.user_id if session else "signed out")
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")
    if session is None:
        _print_ts("[CONSOLE] Signed out: set GOAL_CONSOLE_USER_ID to manage tasks from here.")

    lock = getattr(state, "lock", None)

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations (e.g., sending emails)
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = input(">>> ").strip()
            _rewrite_prev_line(f"[{_ts_local()}] >>> {user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            _print_ts("Commands start with '/'. Use /help to list them.")
            continue

        try:
            if lock:
                with lock:
                    response = command_registry.handle(state, user_input, session, emit=emit)
            else:
                response = command_registry.handle(state, user_input, session, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is not None:
            print(f"[{_ts_local()}] {response}")

    logger.info("Console connector finished.")
