# src/goal_tracker/notifications/resend_client.py

from __future__ import annotations

import logging

import httpx

from ..errors import EmailSendError, NotificationSetupError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.resend.com"


def _make_timeout(seconds: float) -> httpx.Timeout:
    return httpx.Timeout(connect=min(5.0, seconds), read=seconds, write=10.0, pool=min(5.0, seconds))


class ResendEmailSender:
    """
    EmailSender backed by the Resend HTTP API (POST /emails).

    A short-lived AsyncClient is opened per message: the sender is shared between
    the API server loop, the scheduler thread and one-off console runs, which all
    use different event loops.
    The sender identity is fixed per instance.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        sender: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise NotificationSetupError("Resend API key is not configured (GOAL_RESEND_API_KEY).")
        self._api_key = api_key.strip()
        self._sender = sender
        self._base_url = base_url.rstrip("/")
        self._timeout = _make_timeout(timeout_seconds)
        self._transport = transport

    @property
    def sender(self) -> str:
        return self._sender

    async def send_email(self, *, to: str, subject: str, html: str) -> None:
        payload = {"from": self._sender, "to": [to], "subject": subject, "html": html}
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                resp = await client.post("/emails", json=payload)
        except httpx.HTTPError as e:
            raise EmailSendError(f"Email transport error: {e}") from e

        if resp.status_code >= 400:
            raise EmailSendError(
                f"Email API rejected message: {resp.status_code} - {resp.text}",
                status_code=resp.status_code,
            )
        logger.debug("Email accepted to=%s subject=%r", to, subject)
