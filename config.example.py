# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "GOAL_APP_NAME": "App display name (default: goal-tracker).",
    "GOAL_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Connectors
    "GOAL_CONSOLE_ENABLED": "Enable the console REPL (true/false, default: true).",
    "GOAL_API_ENABLED": "Serve the HTTP API (true/false, default: false).",
    "GOAL_API_HOST": "HTTP API bind host (default: 127.0.0.1).",
    "GOAL_API_PORT": "HTTP API port (default: 8000).",
    "GOAL_CORS_ORIGINS": "Comma/space separated allowed origins (default: *).",
    # Auth
    "GOAL_JWT_SECRET": "HS256 secret of the auth provider (fallback: SUPABASE_JWT_SECRET).",
    "GOAL_JWT_ALGORITHM": "Token algorithm (default: HS256).",
    "GOAL_JWT_AUDIENCE": "Expected 'aud' claim (default: authenticated; empty disables the check).",
    # Console identity
    "GOAL_CONSOLE_USER_ID": "User id the console acts as (unset => signed out).",
    "GOAL_CONSOLE_USER_EMAIL": "Email for that user (needed to receive notifications).",
    # Email (Resend)
    "GOAL_RESEND_API_KEY": "Resend API key (fallback: RESEND_API_KEY). Unset => notifications rejected.",
    "GOAL_RESEND_BASE_URL": "Resend base URL (default: https://api.resend.com).",
    "GOAL_EMAIL_FROM": "Sender address (default: Goal Tracker <onboarding@resend.dev>).",
    # Notion
    "GOAL_NOTION_TOKEN": "Notion integration token (fallback: NOTION_TOKEN).",
    "GOAL_NOTION_DATABASE_ID": "Notion database id (fallback: NOTION_DATABASE_ID).",
    "GOAL_NOTION_BASE_URL": "Notion API base URL (default: https://api.notion.com/v1).",
    "GOAL_NOTION_VERSION": "Notion-Version header (default: 2022-06-28).",
    "GOAL_HTTP_TIMEOUT_SECONDS": "Timeout for outbound HTTP calls (default: 15).",
    # Paths (gitignored)
    "GOAL_DATA_DIR": "Local data directory (default: .local/goal_tracker).",
    "GOAL_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/goals.sqlite3).",
    # Statistics / notifications
    "GOAL_CALENDAR_DAYS": "Days shown by the calendar view (default: 30).",
    "GOAL_STREAK_THRESHOLD": "Daily completion percentage that keeps a streak alive (default: 80).",
    "GOAL_NOTIFY_SCHEDULER_ENABLED": "Run the daily notification pass in the background (true/false).",
    "GOAL_NOTIFY_INTERVAL_SECONDS": "Seconds between scheduled passes (default: 86400).",
}
