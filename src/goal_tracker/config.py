# src/goal_tracker/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Components receive settings through AppState; nothing else reads the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "GOAL"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool
    api_enabled: bool
    api_host: str
    api_port: int
    cors_origins: list[str]

    # ---- Auth (tokens issued by the external auth provider) ----
    jwt_secret: str | None
    jwt_algorithm: str
    jwt_audience: str | None

    # ---- Email (Resend) ----
    resend_api_key: str | None
    resend_base_url: str
    email_from: str

    # ---- Notion ----
    notion_token: str | None
    notion_database_id: str | None
    notion_base_url: str
    notion_version: str

    http_timeout_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Statistics / notifications ----
    calendar_days: int
    streak_threshold: float
    notify_scheduler_enabled: bool
    notify_interval_seconds: float

    # ---- Console identity (unset => signed out) ----
    console_user_id: str | None
    console_user_email: str | None

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "goal-tracker") or "goal-tracker"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/goal_tracker"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "goals.sqlite3")

        jwt_audience = _env(_k("JWT_AUDIENCE"), "authenticated").strip() or None

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=_env_bool(_k("CONSOLE_ENABLED"), True),
            api_enabled=_env_bool(_k("API_ENABLED"), False),
            api_host=_env(_k("API_HOST"), "127.0.0.1"),
            api_port=_env_int(_k("API_PORT"), 8000),
            cors_origins=_env_list(_k("CORS_ORIGINS"), ["*"]),
            jwt_secret=_first_env(_k("JWT_SECRET"), "SUPABASE_JWT_SECRET", default=None),
            jwt_algorithm=_env(_k("JWT_ALGORITHM"), "HS256"),
            jwt_audience=jwt_audience,
            resend_api_key=_first_env(_k("RESEND_API_KEY"), "RESEND_API_KEY", default=None),
            resend_base_url=_env(_k("RESEND_BASE_URL"), "https://api.resend.com"),
            email_from=_env(_k("EMAIL_FROM"), "Goal Tracker <onboarding@resend.dev>"),
            notion_token=_first_env(_k("NOTION_TOKEN"), "NOTION_TOKEN", default=None),
            notion_database_id=_first_env(_k("NOTION_DATABASE_ID"), "NOTION_DATABASE_ID", default=None),
            notion_base_url=_env(_k("NOTION_BASE_URL"), "https://api.notion.com/v1"),
            notion_version=_env(_k("NOTION_VERSION"), "2022-06-28"),
            http_timeout_seconds=_env_float(_k("HTTP_TIMEOUT_SECONDS"), 15.0),
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            calendar_days=max(1, _env_int(_k("CALENDAR_DAYS"), 30)),
            streak_threshold=_env_float(_k("STREAK_THRESHOLD"), 80.0),
            notify_scheduler_enabled=_env_bool(_k("NOTIFY_SCHEDULER_ENABLED"), False),
            notify_interval_seconds=_env_float(_k("NOTIFY_INTERVAL_SECONDS"), 86400.0),
            console_user_id=_first_env(_k("CONSOLE_USER_ID"), default=None),
            console_user_email=_first_env(_k("CONSOLE_USER_EMAIL"), default=None),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
