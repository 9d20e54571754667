# tests/test_notion_sync.py

from __future__ import annotations

import json
from datetime import date

import httpx
import pytest

from goal_tracker.errors import UpstreamSyncError
from goal_tracker.notion.sync import NotionTaskSync, page_to_task, task_to_properties

TODAY = date(2024, 6, 15)


def _page(page_id: str, **props) -> dict:
    return {"id": page_id, "properties": props}


FULL_PAGE = _page(
    "p1",
    Title={"title": [{"plain_text": "Read"}]},
    Description={"rich_text": [{"plain_text": "chapter 3"}]},
    Date={"date": {"start": "2024-06-10"}},
    Time={"rich_text": [{"plain_text": "7:00 am"}]},
    Priority={"select": {"name": "High"}},
    Status={"select": {"name": "Completed"}},
    Deadline={"date": {"start": "2024-06-20T10:00:00.000Z"}},
)


def make_sync(handler) -> tuple[NotionTaskSync, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    sync = NotionTaskSync(
        "secret",
        "db1",
        base_url="https://notion.test/v1",
        transport=httpx.MockTransport(recording),
        today=lambda: TODAY,
    )
    return sync, seen


def test_page_to_task_reads_all_fields() -> None:
    assert page_to_task(FULL_PAGE, today=TODAY) == {
        "id": "p1",
        "title": "Read",
        "description": "chapter 3",
        "date": "2024-06-10",
        "time": "7:00 am",
        "priority": "high",
        "status": "completed",
        "deadline": "2024-06-20",
    }


def test_page_to_task_defaults() -> None:
    assert page_to_task(_page("p2"), today=TODAY) == {
        "id": "p2",
        "title": "Untitled",
        "description": "",
        "date": "2024-06-15",
        "time": "8:00 pm",
        "priority": "medium",
        "status": "pending",
        "deadline": "2024-06-15",
    }
    assert page_to_task({"id": "p3"}, today=TODAY) is None


def test_task_to_properties_partial_only_writes_given_fields() -> None:
    props = task_to_properties({"status": "completed", "description": ""}, partial=True)
    assert set(props) == {"Status", "Description"}
    assert props["Status"] == {"select": {"name": "Completed"}}

    full = task_to_properties({"title": "Read", "deadline": "2024-06-20"})
    assert full["Deadline"] == {"date": {"start": "2024-06-20"}}
    assert full["Priority"] == {"select": {"name": "Medium"}}


def test_list_tasks_tests_connectivity_then_queries() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"id": "db1"})
        return httpx.Response(200, json={"results": [FULL_PAGE, {"id": "nope"}, "junk"]})

    sync, seen = make_sync(handler)
    tasks = sync.list_tasks()

    assert [t["id"] for t in tasks] == ["p1"]
    assert [(r.method, r.url.path) for r in seen] == [
        ("GET", "/v1/databases/db1"),
        ("POST", "/v1/databases/db1/query"),
    ]
    assert seen[0].headers["Authorization"] == "Bearer secret"
    assert seen[0].headers["Notion-Version"] == "2022-06-28"


def test_create_update_archive_requests() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "p9", "object": "page"})

    sync, seen = make_sync(handler)

    sync.create_task({"title": "Run", "priority": "low"})
    body = json.loads(seen[-1].content)
    assert seen[-1].url.path == "/v1/pages"
    assert body["parent"] == {"database_id": "db1"}
    assert body["properties"]["Priority"] == {"select": {"name": "Low"}}

    sync.update_task("p9", {"status": "completed"})
    assert (seen[-1].method, seen[-1].url.path) == ("PATCH", "/v1/pages/p9")
    assert json.loads(seen[-1].content) == {"properties": {"Status": {"select": {"name": "Completed"}}}}

    sync.archive_task("p9")
    assert json.loads(seen[-1].content) == {"archived": True}

    with pytest.raises(ValueError):
        sync.create_task({"title": "  "})
    with pytest.raises(ValueError):
        sync.archive_task("")


def test_upstream_errors_carry_the_response_text() -> None:
    sync, _ = make_sync(lambda request: httpx.Response(400, text='{"message":"bad property"}'))
    with pytest.raises(UpstreamSyncError) as ei:
        sync.update_task("p1", {"status": "completed"})
    assert ei.value.status_code == 400
    assert "bad property" in str(ei.value)


def test_transport_errors_and_missing_credentials() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    sync, _ = make_sync(handler)
    with pytest.raises(UpstreamSyncError):
        sync.list_tasks()

    unconfigured = NotionTaskSync(None, "db1")
    assert not unconfigured.configured
    with pytest.raises(UpstreamSyncError):
        unconfigured.list_tasks()
    unconfigured.close()
