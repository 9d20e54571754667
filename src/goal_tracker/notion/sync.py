# src/goal_tracker/notion/sync.py

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import date
from typing import Any

import httpx

from ..errors import UpstreamSyncError
from ..tasks.task_models import DEFAULT_TIME

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.notion.com/v1"
DEFAULT_NOTION_VERSION = "2022-06-28"


# ---- property readers (Notion page -> task fields) ----


def _first_plain_text(items: Any) -> str | None:
    if isinstance(items, list) and items:
        first = items[0]
        if isinstance(first, dict):
            text = first.get("plain_text")
            if isinstance(text, str):
                return text
    return None


def _title(props: Mapping[str, Any]) -> str | None:
    for name in ("Title", "Name"):
        prop = props.get(name)
        if isinstance(prop, dict):
            text = _first_plain_text(prop.get("title"))
            if text:
                return text
    return None


def _rich_text(props: Mapping[str, Any], name: str) -> str | None:
    prop = props.get(name)
    if isinstance(prop, dict):
        return _first_plain_text(prop.get("rich_text"))
    return None


def _date_start(props: Mapping[str, Any], name: str) -> str | None:
    prop = props.get(name)
    if not isinstance(prop, dict):
        return None
    value = prop.get("date")
    if isinstance(value, dict) and isinstance(value.get("start"), str):
        return value["start"]
    # Older pages store dates as rich text.
    return _first_plain_text(prop.get("rich_text"))


def _select_name(props: Mapping[str, Any], name: str) -> str | None:
    prop = props.get(name)
    if isinstance(prop, dict):
        sel = prop.get("select")
        if isinstance(sel, dict) and isinstance(sel.get("name"), str):
            return sel["name"]
    return None


def page_to_task(page: Mapping[str, Any], *, today: date) -> dict[str, Any] | None:
    """
    Map a Notion database page onto the task shape.

    Missing properties fall back to: title "Untitled", empty description,
    date/deadline today, time "8:00 pm", priority "medium", status "pending".
    Returns None for pages without properties.
    """
    props = page.get("properties")
    if not isinstance(props, dict):
        return None

    today_s = today.isoformat()
    return {
        "id": page.get("id"),
        "title": _title(props) or "Untitled",
        "description": _rich_text(props, "Description") or "",
        "date": (_date_start(props, "Date") or today_s)[:10],
        "time": _rich_text(props, "Time") or DEFAULT_TIME,
        "priority": (_select_name(props, "Priority") or "medium").lower(),
        "status": (_select_name(props, "Status") or "pending").lower(),
        "deadline": (_date_start(props, "Deadline") or today_s)[:10],
    }


# ---- property writers (task fields -> Notion page) ----


def _text(content: str) -> list[dict[str, Any]]:
    return [{"text": {"content": content}}]


def task_to_properties(fields: Mapping[str, Any], *, partial: bool = False) -> dict[str, Any]:
    """
    Build Notion properties from task fields.

    With partial=True only the fields present (and non-empty, except description)
    are written, so a PATCH leaves everything else untouched.
    """
    props: dict[str, Any] = {}

    def wanted(key: str) -> bool:
        if not partial:
            return True
        if key == "description":
            return key in fields
        return bool(fields.get(key))

    if wanted("title"):
        props["Title"] = {"title": _text(str(fields.get("title") or ""))}
    if wanted("description"):
        props["Description"] = {"rich_text": _text(str(fields.get("description") or ""))}
    if wanted("date") and fields.get("date"):
        props["Date"] = {"date": {"start": str(fields["date"])}}
    if wanted("time"):
        props["Time"] = {"rich_text": _text(str(fields.get("time") or DEFAULT_TIME))}
    if wanted("priority"):
        props["Priority"] = {"select": {"name": str(fields.get("priority") or "medium").capitalize()}}
    if wanted("status"):
        props["Status"] = {"select": {"name": str(fields.get("status") or "pending").capitalize()}}
    if wanted("deadline") and fields.get("deadline"):
        props["Deadline"] = {"date": {"start": str(fields["deadline"])}}
    return props


class NotionTaskSync:
    """
    Stateless proxy between the task shape and a Notion database.

    Every failure (missing credentials, transport error, non-2xx response) is raised
    as UpstreamSyncError carrying the upstream text.
    """

    def __init__(
        self,
        token: str | None,
        database_id: str | None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        notion_version: str = DEFAULT_NOTION_VERSION,
        timeout_seconds: float = 15.0,
        transport: httpx.BaseTransport | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._token = (token or "").strip()
        self._database_id = (database_id or "").strip()
        self._today = today
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {self._token}",
                "Content-Type": "application/json",
                "Notion-Version": notion_version,
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self._token and self._database_id)

    def close(self) -> None:
        self._client.close()

    def _require_credentials(self) -> None:
        if not self.configured:
            raise UpstreamSyncError(
                "Notion credentials not configured. "
                f"Token: {bool(self._token)}, Database ID: {bool(self._database_id)}"
            )

    def _request(self, method: str, path: str, *, json: Any = None, what: str = "Notion API") -> dict[str, Any]:
        self._require_credentials()
        try:
            resp = self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise UpstreamSyncError(f"{what} request failed: {e}") from e

        if resp.status_code >= 400:
            logger.error("%s error status=%s body=%s", what, resp.status_code, resp.text)
            raise UpstreamSyncError(
                f"{what} error: {resp.status_code} - {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamSyncError(f"{what} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise UpstreamSyncError(f"{what} returned an unexpected payload")
        return data

    # ---- operations ----

    def list_tasks(self) -> list[dict[str, Any]]:
        db = self._database_id
        self._request("GET", f"/databases/{db}", what="Notion API connectivity test")

        data = self._request("POST", f"/databases/{db}/query", json={})
        results = data.get("results")
        if not isinstance(results, list):
            raise UpstreamSyncError("No results from Notion API")

        today = self._today()
        tasks: list[dict[str, Any]] = []
        for i, page in enumerate(results):
            if not isinstance(page, dict):
                logger.debug("Skipping page %d - not an object", i)
                continue
            try:
                task = page_to_task(page, today=today)
            except Exception:
                logger.exception("Error processing Notion page %d", i)
                continue
            if task is None:
                logger.debug("Skipping page %d - no properties", i)
                continue
            tasks.append(task)

        logger.info("Fetched %d task(s) from Notion", len(tasks))
        return tasks

    def create_task(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        if not str(fields.get("title") or "").strip():
            raise ValueError("title is required")
        body = {
            "parent": {"database_id": self._database_id},
            "properties": task_to_properties(fields),
        }
        return self._request("POST", "/pages", json=body)

    def update_task(self, page_id: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        if not page_id:
            raise ValueError("id is required")
        body = {"properties": task_to_properties(fields, partial=True)}
        return self._request("PATCH", f"/pages/{page_id}", json=body)

    def archive_task(self, page_id: str) -> dict[str, Any]:
        """Notion has no hard delete; pages are archived."""
        if not page_id:
            raise ValueError("id is required")
        return self._request("PATCH", f"/pages/{page_id}", json={"archived": True})
