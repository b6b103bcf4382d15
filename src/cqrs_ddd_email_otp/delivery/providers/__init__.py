"""Email provider implementations."""

from __future__ import annotations

from .mailgun import MailgunEmailProvider
from .memory import InMemoryEmailProvider
from .sendgrid import SendGridEmailProvider
from .ses import SesEmailProvider
from .smtp import SmtpEmailProvider

__all__ = [
    "SmtpEmailProvider",
    "SendGridEmailProvider",
    "SesEmailProvider",
    "MailgunEmailProvider",
    "InMemoryEmailProvider",
]
