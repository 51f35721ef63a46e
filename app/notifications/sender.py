from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)


class NotificationError(RuntimeError):
    """Raised when an email could not be handed to the delivery provider."""


class EmailSender(Protocol):
    async def send(self, to: str, subject: str, html: str) -> str | None:
        """Deliver one email and return the provider message id."""
        ...


class ResendEmailSender:
    """Send transactional email through the Resend REST API."""

    def __init__(
        self,
        *,
        api_key: str | None,
        from_address: str,
        reply_to: str | None = None,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._from_address = from_address
        self._reply_to = reply_to
        self._api_url = api_url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def send(self, to: str, subject: str, html: str) -> str | None:
        if not self._api_key:
            raise NotificationError("Email provider is not configured")

        payload: dict[str, Any] = {
            "from": self._from_address,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if self._reply_to:
            payload["reply_to"] = self._reply_to

        try:
            response = await self._client.post(
                self._api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as exc:
            raise NotificationError(f"Email delivery to {to} failed: {exc}") from exc

        if response.status_code >= 400:
            raise NotificationError(
                f"Email provider rejected message to {to} with status {response.status_code}"
            )

        try:
            message_id = response.json().get("id")
        except ValueError:
            message_id = None
        logger.info("Email sent to %s (id=%s)", to, message_id)
        return message_id

    async def aclose(self) -> None:
        await self._client.aclose()
