"""Built-in SMTP provider: the host's own mail relay."""

from __future__ import annotations

import email.message
import email.policy
import logging

import aiosmtplib

from ...exceptions import EmailSendError
from ...ports import IEmailProvider
from ..message import EmailMessage, format_sender

logger = logging.getLogger(__name__)


class SmtpEmailProvider(IEmailProvider):
    """
    Async SMTP provider using aiosmtplib.

    This is the fallback target of the dispatcher. It is available as soon
    as a relay host and sender address are configured.
    """

    name = "Built-in SMTP"

    def __init__(
        self,
        host: str | None,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
        from_email: str | None = None,
        from_name: str | None = None,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
        self.from_email = from_email
        self.from_name = from_name

    def is_available(self) -> bool:
        if not self.host:
            logger.warning("Built-in SMTP relay host is not configured")
            return False
        if not self.from_email:
            logger.warning("Built-in SMTP from email is not configured")
            return False
        return True

    def build_message(self, message: EmailMessage) -> email.message.EmailMessage:
        from_addr = message.from_email or self.from_email
        if not from_addr:
            raise EmailSendError(self.name, "Sender email (from_email) is required.")

        mime = email.message.EmailMessage(policy=email.policy.default)
        mime["To"] = message.to
        mime["From"] = format_sender(from_addr, self.from_name)
        mime["Subject"] = message.subject

        if message.html_body:
            mime.set_content(message.text_body, subtype="plain", charset="utf-8")
            mime.add_alternative(message.html_body, subtype="html", charset="utf-8")
        else:
            mime.set_content(message.text_body, charset="utf-8")
        return mime

    async def send_email(self, message: EmailMessage) -> None:
        mime = self.build_message(message)
        try:
            async with aiosmtplib.SMTP(
                hostname=self.host,
                port=self.port,
                timeout=self.timeout,
                start_tls=False,
            ) as smtp:
                if self.use_tls:
                    await smtp.starttls()
                if self.username and self.password:
                    await smtp.login(self.username, self.password)
                await smtp.send_message(mime)
        except aiosmtplib.SMTPException as e:
            logger.error(f"Failed to send email to {message.to} via SMTP: {e}")
            raise EmailSendError(self.name, str(e)) from e
        except OSError as e:
            logger.error(f"SMTP connection to {self.host}:{self.port} failed: {e}")
            raise EmailSendError(self.name, str(e)) from e

        logger.info(f"Email sent to {message.to} via SMTP")


__all__: list[str] = ["SmtpEmailProvider"]
