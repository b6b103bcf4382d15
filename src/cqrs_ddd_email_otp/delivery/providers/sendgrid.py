"""SendGrid v3 Web API provider."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...exceptions import EmailSendError
from ...ports import IEmailProvider
from ..message import EmailMessage

logger = logging.getLogger(__name__)

SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"


class SendGridEmailProvider(IEmailProvider):
    """
    Sends through ``POST /v3/mail/send``. SendGrid answers 202 when the
    message is queued; any 2xx counts as success.
    """

    name = "SendGrid"

    def __init__(
        self,
        api_key: str | None,
        from_email: str | None,
        from_name: str | None = None,
        timeout: float = 10.0,
        api_url: str = SENDGRID_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name or from_email
        self.timeout = timeout
        self.api_url = api_url
        self._transport = transport

    def is_available(self) -> bool:
        if not self.api_key:
            logger.warning("SendGrid API key is not configured")
            return False
        if not self.from_email:
            logger.warning("SendGrid from email is not configured")
            return False
        return True

    def build_payload(self, message: EmailMessage) -> dict[str, Any]:
        content = [{"type": "text/plain", "value": message.text_body}]
        if message.html_body:
            content.append({"type": "text/html", "value": message.html_body})
        return {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": message.from_email or self.from_email, "name": self.from_name},
            "subject": message.subject,
            "content": content,
        }

    async def send_email(self, message: EmailMessage) -> None:
        if not self.is_available():
            raise EmailSendError(self.name, "SendGrid is not properly configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.api_url, json=self.build_payload(message), headers=headers
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"SendGrid API returned error status {e.response.status_code}: {e.response.text}"
            )
            raise EmailSendError(self.name, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Failed to send email via SendGrid to {message.to}: {e}")
            raise EmailSendError(self.name, str(e)) from e

        logger.info(f"Email sent to {message.to} via SendGrid (status: {response.status_code})")


__all__: list[str] = ["SendGridEmailProvider"]
