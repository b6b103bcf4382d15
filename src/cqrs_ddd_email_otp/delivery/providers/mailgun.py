"""Mailgun Messages API provider."""

from __future__ import annotations

import logging

import httpx

from ...exceptions import EmailSendError
from ...ports import IEmailProvider
from ..message import EmailMessage, format_sender

logger = logging.getLogger(__name__)


class MailgunEmailProvider(IEmailProvider):
    """
    Sends through ``POST {base_url}/v3/{domain}/messages`` with HTTP basic
    auth (``api`` / API key) and a form-encoded body.
    """

    name = "Mailgun"

    def __init__(
        self,
        api_key: str | None,
        domain: str | None,
        from_email: str | None,
        from_name: str | None = None,
        base_url: str = "https://api.mailgun.net",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.domain = domain
        self.from_email = from_email
        self.from_name = from_name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def is_available(self) -> bool:
        if not self.api_key:
            logger.warning("Mailgun API key is not configured")
            return False
        if not self.domain:
            logger.warning("Mailgun domain is not configured")
            return False
        if not self.from_email:
            logger.warning("Mailgun from email is not configured")
            return False
        return True

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/v3/{self.domain}/messages"

    async def send_email(self, message: EmailMessage) -> None:
        if not self.is_available():
            raise EmailSendError(self.name, "Mailgun is not properly configured")

        from_addr = message.from_email or self.from_email
        if not from_addr:
            raise EmailSendError(self.name, "Sender email (from_email) is required.")
        data = {
            "from": format_sender(from_addr, self.from_name),
            "to": message.to,
            "subject": message.subject,
            "text": message.text_body,
        }
        if message.html_body:
            data["html"] = message.html_body

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.messages_url,
                    data=data,
                    auth=("api", self.api_key or ""),
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Mailgun API returned error status {e.response.status_code}: {e.response.text}"
            )
            raise EmailSendError(self.name, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Failed to send email via Mailgun to {message.to}: {e}")
            raise EmailSendError(self.name, str(e)) from e

        logger.info(f"Email sent to {message.to} via Mailgun")


__all__: list[str] = ["MailgunEmailProvider"]
