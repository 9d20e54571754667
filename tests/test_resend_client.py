# tests/test_resend_client.py

from __future__ import annotations

import json

import httpx
import pytest

from goal_tracker.errors import EmailSendError, NotificationSetupError
from goal_tracker.notifications.resend_client import ResendEmailSender


def make_sender(handler) -> tuple[ResendEmailSender, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    async def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    sender = ResendEmailSender(
        "re_test",
        sender="Goal Tracker <noreply@example.com>",
        base_url="https://resend.test",
        transport=httpx.MockTransport(recording),
    )
    return sender, seen


@pytest.mark.asyncio
async def test_send_posts_one_message() -> None:
    sender, seen = make_sender(lambda request: httpx.Response(200, json={"id": "email_1"}))

    await sender.send_email(to="u1@example.com", subject="Hi", html="<p>hi</p>")

    (req,) = seen
    assert (req.method, req.url.path) == ("POST", "/emails")
    assert req.headers["Authorization"] == "Bearer re_test"
    assert json.loads(req.content) == {
        "from": "Goal Tracker <noreply@example.com>",
        "to": ["u1@example.com"],
        "subject": "Hi",
        "html": "<p>hi</p>",
    }


@pytest.mark.asyncio
async def test_rejected_message_raises_email_send_error() -> None:
    sender, _ = make_sender(lambda request: httpx.Response(422, text="invalid `to` field"))

    with pytest.raises(EmailSendError) as ei:
        await sender.send_email(to="bad", subject="Hi", html="<p>hi</p>")
    assert ei.value.status_code == 422


@pytest.mark.asyncio
async def test_transport_error_raises_email_send_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    sender, _ = make_sender(handler)
    with pytest.raises(EmailSendError):
        await sender.send_email(to="u1@example.com", subject="Hi", html="<p>hi</p>")


def test_missing_api_key_is_a_setup_error() -> None:
    with pytest.raises(NotificationSetupError):
        ResendEmailSender("  ", sender="x@example.com")
