"""AWS SES provider (optional)."""

from __future__ import annotations

import importlib.util
import logging
from typing import Any

from ...exceptions import EmailSendError
from ...ports import IEmailProvider
from ..message import EmailMessage, format_sender

logger = logging.getLogger(__name__)


class SesEmailProvider(IEmailProvider):
    """
    AWS SES provider using aiobotocore with explicit IAM credentials.

    Requires the ``aws`` extra.
    """

    name = "AWS SES"

    def __init__(
        self,
        region_name: str | None,
        access_key_id: str | None,
        secret_access_key: str | None,
        from_email: str | None,
        from_name: str | None = None,
        timeout: float = 10.0,
    ):
        self.region_name = region_name
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.from_email = from_email
        self.from_name = from_name or from_email
        self.timeout = timeout

    def is_available(self) -> bool:
        if not self.region_name:
            logger.warning("AWS SES region is not configured")
            return False
        if not self.access_key_id:
            logger.warning("AWS Access Key ID is not configured")
            return False
        if not self.secret_access_key:
            logger.warning("AWS Secret Access Key is not configured")
            return False
        if not self.from_email:
            logger.warning("AWS SES from email is not configured")
            return False
        return True

    def _create_client(self) -> Any:
        """Create an SES client context manager."""
        if importlib.util.find_spec("aiobotocore") is None:
            raise ImportError(
                "aiobotocore is required for SesEmailProvider. "
                "Install with: pip install 'cqrs-ddd-email-otp[aws]'"
            )

        from aiobotocore.config import AioConfig
        from aiobotocore.session import get_session

        session = get_session()
        return session.create_client(
            "ses",
            region_name=self.region_name,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=AioConfig(connect_timeout=self.timeout, read_timeout=self.timeout),
        )

    def build_request(self, message: EmailMessage) -> dict[str, Any]:
        from_addr = message.from_email or self.from_email
        if not from_addr:
            raise EmailSendError(self.name, "Sender email (from_email) is required.")
        body: dict[str, Any] = {"Text": {"Data": message.text_body, "Charset": "UTF-8"}}
        if message.html_body:
            body["Html"] = {"Data": message.html_body, "Charset": "UTF-8"}
        return {
            "Source": format_sender(from_addr, self.from_name),
            "Destination": {"ToAddresses": [message.to]},
            "Message": {
                "Subject": {"Data": message.subject, "Charset": "UTF-8"},
                "Body": body,
            },
        }

    async def send_email(self, message: EmailMessage) -> None:
        if not self.is_available():
            raise EmailSendError(self.name, "AWS SES is not properly configured")

        request = self.build_request(message)
        try:
            async with self._create_client() as client:
                response = await client.send_email(**request)
        except ImportError:
            raise
        except Exception as e:
            logger.error(f"Failed to send email via SES to {message.to}: {e}")
            raise EmailSendError(self.name, str(e)) from e

        logger.info(f"Email sent to {message.to} via SES (MessageId: {response['MessageId']})")


__all__: list[str] = ["SesEmailProvider"]
