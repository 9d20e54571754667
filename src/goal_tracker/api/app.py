# src/goal_tracker/api/app.py

"""
HTTP API.

Thin handlers over AppState: each request builds the signed-in user's task client,
notification trigger or study timer, calls one operation and serializes the result.
Errors from the core are mapped to status codes in one place (see _install_error_handlers).
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Body, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..core.state import AppState
from ..errors import (
    AuthRequired,
    NotificationSetupError,
    StoreError,
    TaskNotFound,
    UpstreamSyncError,
)
from ..stats import streaks
from ..study.timer import TimerStateError
from ..tasks.task_models import NotificationRecord, StudySession, UserSession
from .auth import get_current_user, get_state
from .schemas import NotificationRequest, NotionTaskBody, StudyStart, TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)


# ---- serializers ----


def _habit_dict(h: streaks.Habit) -> dict[str, Any]:
    return {
        "id": h.id,
        "name": h.name,
        "target": h.target,
        "completed": h.completed,
        "streak": h.streak,
        "best_streak": h.best_streak,
        "category": h.category,
        "completion_rate": h.completion_rate,
    }


def _day_dict(d: streaks.CalendarDay) -> dict[str, Any]:
    return {
        "date": d.date.isoformat(),
        "completed": d.completed,
        "total": d.total,
        "percentage": d.rounded,
    }


def _notification_dict(n: NotificationRecord) -> dict[str, Any]:
    return {
        "id": n.id,
        "type": n.type.value,
        "task_id": n.task_id,
        "streak_count": n.streak_count,
        "email_subject": n.email_subject,
        "sent_at": n.sent_at,
    }


def _session_dict(s: StudySession) -> dict[str, Any]:
    return {
        "id": s.id,
        "task_id": s.task_id,
        "task_title": s.task_title,
        "start_time": s.start_time.isoformat(),
        "end_time": s.end_time.isoformat() if s.end_time else None,
        "duration": s.duration,
        "is_active": s.is_active,
    }


# ---- error mapping ----


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthRequired)
    async def _auth_required(request: Request, exc: AuthRequired) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": str(exc)})

    @app.exception_handler(TaskNotFound)
    async def _not_found(request: Request, exc: TaskNotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": "Task store unavailable, please retry."})

    @app.exception_handler(ValueError)
    async def _bad_value(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(TimerStateError)
    async def _timer_state(request: Request, exc: TimerStateError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(NotificationSetupError)
    async def _setup_error(request: Request, exc: NotificationSetupError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(UpstreamSyncError)
    async def _upstream_error(request: Request, exc: UpstreamSyncError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"error": str(exc)})


def create_app(state: AppState) -> FastAPI:
    settings = state.settings
    app = FastAPI(title=str(getattr(settings, "app_name", "goal-tracker")), version=__version__)
    app.state.goal = state

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(getattr(settings, "cors_origins", ["*"]) or ["*"]),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _install_error_handlers(app)

    calendar_days = int(getattr(settings, "calendar_days", streaks.CALENDAR_DAYS))
    threshold = float(getattr(settings, "streak_threshold", streaks.DEFAULT_THRESHOLD))

    @app.get("/")
    def root() -> dict[str, Any]:
        return {"message": "Goal tracker API", "version": app.version}

    # ---- tasks ----

    @app.get("/api/tasks")
    def list_tasks(
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        tasks = st.task_client(session).refresh()
        return {"tasks": [t.to_dict() for t in tasks]}

    @app.post("/api/tasks", status_code=201)
    def create_task(
        body: TaskCreate,
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        task = st.task_client(session).create(body.model_dump(exclude_none=True))
        return task.to_dict()

    @app.patch("/api/tasks/{task_id}")
    def update_task(
        task_id: str,
        body: TaskUpdate,
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        task = st.task_client(session).update(task_id, body.model_dump(exclude_unset=True))
        return task.to_dict()

    @app.delete("/api/tasks/{task_id}", status_code=204)
    def delete_task(
        task_id: str,
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> None:
        st.task_client(session).delete(task_id)

    @app.post("/api/tasks/{task_id}/toggle")
    def toggle_task(
        task_id: str,
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        client = st.task_client(session)
        client.refresh()
        return client.toggle_status(task_id).to_dict()

    @app.get("/api/tasks/today")
    def todays_goals(
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        client = st.task_client(session)
        client.refresh()
        progress = client.today()
        return {
            "date": progress.date.isoformat(),
            "completed": progress.completed,
            "total": progress.total,
            "percentage": progress.percentage,
            "tasks": [t.to_dict() for t in progress.tasks],
        }

    # ---- derived views ----

    @app.get("/api/habits")
    def habits(
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        client = st.task_client(session)
        client.refresh()
        items = client.habits()
        summary = streaks.summarize_habits(items)
        return {
            "habits": [_habit_dict(h) for h in items],
            "summary": {
                "active_streaks": summary.active_streaks,
                "average_completion": summary.average_completion,
                "best_streak": summary.best_streak,
            },
        }

    @app.get("/api/calendar")
    def calendar(
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        client = st.task_client(session)
        client.refresh()
        days = client.calendar(calendar_days)
        summary = streaks.summarize_calendar(days, threshold)
        return {
            "days": [_day_dict(d) for d in days],
            "summary": {
                "current_streak": summary.current_streak,
                "best_streak": summary.best_streak,
                "average_completion": summary.average_completion,
                "total_completed": summary.total_completed,
                "perfect_days": summary.perfect_days,
            },
        }

    # ---- notifications ----

    @app.post("/api/notifications/send")
    async def send_notifications(
        body: NotificationRequest,
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        result = await st.notification_trigger(session).trigger(body.type)
        return {
            "success": True,
            "notifications_sent": result.sent,
            "message": result.message,
        }

    @app.get("/api/notifications")
    def recent_notifications(
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        items = st.notification_trigger(session).recent(limit=10)
        return {"notifications": [_notification_dict(n) for n in items]}

    # ---- Notion proxy ----

    @app.get("/api/notion/tasks")
    def notion_list(
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        return {"tasks": st.notion.list_tasks()}

    @app.post("/api/notion/tasks")
    def notion_create(
        body: NotionTaskBody,
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        return st.notion.create_task(body.model_dump(exclude={"id"}, exclude_none=True))

    @app.patch("/api/notion/tasks")
    def notion_update(
        body: NotionTaskBody,
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        fields = body.model_dump(exclude={"id"}, exclude_unset=True)
        return st.notion.update_task(body.id or "", fields)

    @app.delete("/api/notion/tasks")
    def notion_archive(
        body: NotionTaskBody = Body(...),
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        return st.notion.archive_task(body.id or "")

    # ---- study timer ----

    def _study_view(st: AppState, session: UserSession) -> dict[str, Any]:
        timer = st.timer_for(session)
        return {**timer.snapshot(), "history": [_session_dict(s) for s in timer.history]}

    @app.get("/api/study")
    def study_status(
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        return _study_view(st, session)

    @app.post("/api/study/start")
    def study_start(
        body: StudyStart,
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        task = st.task_store.get_task(session.user_id, body.task_id)
        st.timer_for(session).start(task)
        return _study_view(st, session)

    @app.post("/api/study/{action}")
    def study_action(
        action: str,
        session: UserSession = Depends(get_current_user),
        st: AppState = Depends(get_state),
    ) -> dict[str, Any]:
        timer = st.timer_for(session)
        if action == "pause":
            timer.pause()
        elif action == "resume":
            timer.resume()
        elif action == "reset":
            timer.reset()
        elif action == "stop":
            timer.stop()
        else:
            raise ValueError(f"Unknown study action: {action}")
        return _study_view(st, session)

    return app
