"""Outbound email transport.

Notification emails go out through a single transport interface. The
production transport posts to the Resend HTTP API; tests and local dev inject
their own implementation (or none, in which case email is skipped).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from projecthub.core.config import settings
from projecthub.services.http_service import request_with_retries

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"
RESEND_MAX_ATTEMPTS = 3
RESEND_RETRY_BASE_DELAY = 0.5
RESEND_RETRY_MAX_DELAY = 4.0
RESEND_TIMEOUT_SECONDS = 20.0


@dataclass(frozen=True)
class EmailMessage:
    to_email: str
    subject: str
    html: str
    text: str
    from_email: str | None = None
    idempotency_key: str | None = None


@dataclass(frozen=True)
class SendResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


class EmailTransport(Protocol):
    key: str

    async def send(self, message: EmailMessage) -> SendResult:
        """Send one email. May raise; callers treat any failure as non-fatal."""


def _error_detail(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        return data.get("message") or data.get("error")
    return None


def _message_id(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        mid = data.get("id")
        if isinstance(mid, str) and mid:
            return mid
    return None


class ResendEmailTransport:
    """Send transactional email through Resend."""

    key = "resend"

    def __init__(
        self,
        api_key: str,
        default_from: str,
        *,
        client: httpx.AsyncClient | None = None,
        max_attempts: int = RESEND_MAX_ATTEMPTS,
        base_delay: float = RESEND_RETRY_BASE_DELAY,
    ) -> None:
        self.api_key = api_key
        self.default_from = default_from
        self._client = client
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    def _payload(self, message: EmailMessage) -> dict[str, object]:
        payload: dict[str, object] = {
            "from": message.from_email or self.default_from,
            "to": [message.to_email],
            "subject": message.subject,
            "html": message.html,
        }
        if message.text:
            payload["text"] = message.text
        return payload

    def _headers(self, message: EmailMessage) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if message.idempotency_key:
            headers["Idempotency-Key"] = message.idempotency_key
        return headers

    async def _post(self, client: httpx.AsyncClient, message: EmailMessage) -> httpx.Response:
        payload = self._payload(message)
        headers = self._headers(message)

        async def request_fn() -> httpx.Response:
            return await client.post(RESEND_SEND_URL, headers=headers, json=payload)

        return await request_with_retries(
            request_fn,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=RESEND_RETRY_MAX_DELAY,
        )

    async def send(self, message: EmailMessage) -> SendResult:
        try:
            if self._client is not None:
                response = await self._post(self._client, message)
            else:
                async with httpx.AsyncClient(timeout=RESEND_TIMEOUT_SECONDS) as client:
                    response = await self._post(client, message)
        except httpx.TimeoutException:
            return SendResult(success=False, error="Connection timeout")
        except httpx.RequestError as exc:
            return SendResult(success=False, error=f"Connection error: {exc.__class__.__name__}")

        if 200 <= response.status_code < 300:
            return SendResult(success=True, message_id=_message_id(response))

        # Idempotency conflict = already sent
        if response.status_code == 409:
            return SendResult(success=True, message_id=_message_id(response))

        error_msg = f"Resend API error: {response.status_code}"
        detail = _error_detail(response)
        if detail:
            error_msg = f"{error_msg} ({detail})"
        return SendResult(success=False, error=error_msg)


def get_transport() -> EmailTransport | None:
    """Return the configured transport, or None when email is not configured."""
    if not settings.email_configured:
        return None
    return ResendEmailTransport(settings.RESEND_API_KEY, settings.EMAIL_FROM)
