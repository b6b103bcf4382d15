"""Delivery value types: the message, the provider enum and attempt records."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any

logger = logging.getLogger(__name__)


class EmailProviderType(Enum):
    """Closed set of supported email back-ends."""

    BUILTIN = "builtin"
    SENDGRID = "sendgrid"
    AWS_SES = "aws_ses"
    MAILGUN = "mailgun"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def from_string(cls, value: str | None) -> EmailProviderType:
        """Resolve a configured identifier; blank or unknown means BUILTIN."""
        if value is None or not value.strip():
            return cls.BUILTIN
        normalized = value.strip().lower().replace("-", "_")
        if normalized in _BUILTIN_ALIASES:
            return cls.BUILTIN
        for member in cls:
            if member.value == normalized or member.name.lower() == normalized:
                return member
        logger.warning(f"Unknown email provider type {value!r}, using built-in provider")
        return cls.BUILTIN


# Identifiers older configurations use for the host's own mailer
_BUILTIN_ALIASES = frozenset({"keycloak", "default"})

_DISPLAY_NAMES = {
    EmailProviderType.BUILTIN: "Built-in SMTP",
    EmailProviderType.SENDGRID: "SendGrid",
    EmailProviderType.AWS_SES: "AWS SES",
    EmailProviderType.MAILGUN: "Mailgun",
}


@dataclass(frozen=True, repr=False)
class EmailMessage:
    """Immutable email ready for delivery.

    ``template_data`` keeps the raw values (username, code, ttl) for
    providers that build their own body.
    """

    to: str
    subject: str
    text_body: str
    html_body: str | None = None
    from_email: str | None = None
    template_data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.to:
            raise ValueError("Recipient email is required")
        object.__setattr__(self, "template_data", MappingProxyType(dict(self.template_data)))

    def __repr__(self) -> str:
        # Bodies carry the code
        return (
            f"EmailMessage(to={self.to!r}, subject={self.subject!r}, "
            f"has_html={self.html_body is not None}, "
            f"template_keys={sorted(self.template_data)})"
        )


class DeliveryStatus(Enum):
    """Outcome of one provider attempt."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DeliveryAttempt:
    """Immutable record of one send try, kept for fallback and diagnostics."""

    provider: str
    status: DeliveryStatus
    error: str | None = None
    attempted_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.attempted_at is None:
            object.__setattr__(self, "attempted_at", datetime.now(timezone.utc))

    @property
    def succeeded(self) -> bool:
        return self.status is DeliveryStatus.SENT

    @classmethod
    def sent(cls, provider: str) -> DeliveryAttempt:
        return cls(provider=provider, status=DeliveryStatus.SENT)

    @classmethod
    def failed(cls, provider: str, error: str | None = None) -> DeliveryAttempt:
        return cls(provider=provider, status=DeliveryStatus.FAILED, error=error)

    @classmethod
    def skipped(cls, provider: str, error: str | None = None) -> DeliveryAttempt:
        return cls(provider=provider, status=DeliveryStatus.SKIPPED, error=error)


def format_sender(from_email: str, from_name: str | None) -> str:
    """``"Name <addr>"`` when a distinct display name is set, else the address."""
    if from_name and from_name != from_email:
        return f"{from_name} <{from_email}>"
    return from_email


__all__: list[str] = [
    "EmailProviderType",
    "EmailMessage",
    "DeliveryStatus",
    "DeliveryAttempt",
    "format_sender",
]
