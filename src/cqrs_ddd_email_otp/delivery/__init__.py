"""Email delivery: message types, providers and the fallback dispatcher."""

from __future__ import annotations

from .dispatcher import DeliveryDispatcher
from .factory import EmailProviderFactory
from .message import (
    DeliveryAttempt,
    DeliveryStatus,
    EmailMessage,
    EmailProviderType,
)
from .providers import (
    InMemoryEmailProvider,
    MailgunEmailProvider,
    SendGridEmailProvider,
    SesEmailProvider,
    SmtpEmailProvider,
)
from .templates import CodeEmailRenderer, CodeEmailTemplate

__all__ = [
    "DeliveryDispatcher",
    "EmailProviderFactory",
    "DeliveryAttempt",
    "DeliveryStatus",
    "EmailMessage",
    "EmailProviderType",
    "CodeEmailRenderer",
    "CodeEmailTemplate",
    "SmtpEmailProvider",
    "SendGridEmailProvider",
    "SesEmailProvider",
    "MailgunEmailProvider",
    "InMemoryEmailProvider",
]
