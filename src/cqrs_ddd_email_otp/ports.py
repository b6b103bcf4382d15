"""Email OTP ports (protocols).

The host identity provider supplies the session scratch store and, where it
wants its own mail relay, the built-in email provider. All ports use
@runtime_checkable for isinstance checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from .context import AuthenticationContext
    from .delivery.message import EmailMessage
    from .policy import PolicyVerdict


# ═══════════════════════════════════════════════════════════════
# SESSION STORE PORT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class ISessionStore(Protocol):
    """Key-value scratch space scoped to one authentication attempt.

    Values are plain strings. The host owns the lifetime of the store and
    serializes requests for the same attempt.
    """

    async def get(self, key: str) -> str | None:
        """Return the stored value or None if absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    async def remove(self, key: str) -> None:
        """Remove a value. Removing a missing key is a no-op."""
        ...


# ═══════════════════════════════════════════════════════════════
# CLOCK / RANDOM PORTS
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IClock(Protocol):
    """Source of the current time (timezone-aware UTC)."""

    def now(self) -> datetime: ...


@runtime_checkable
class ICodeGenerator(Protocol):
    """Source of numeric one-time codes."""

    def generate(self, length: int) -> str:
        """Return ``length`` decimal digits, leading zeros allowed."""
        ...


# ═══════════════════════════════════════════════════════════════
# EMAIL PROVIDER PORT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IEmailProvider(Protocol):
    """A concrete email back-end (SMTP relay, SendGrid, SES, ...).

    Implementations:
        - SmtpEmailProvider (built-in)
        - SendGridEmailProvider
        - SesEmailProvider
        - MailgunEmailProvider
        - InMemoryEmailProvider (testing)
    """

    @property
    def name(self) -> str:
        """Human readable provider name, used in logs and attempts."""
        ...

    def is_available(self) -> bool:
        """Pre-flight check: are the required credentials present?

        Must not perform network I/O.
        """
        ...

    async def send_email(self, message: EmailMessage) -> None:
        """Send the message.

        Raises:
            EmailSendError: The provider rejected or failed the send.
        """
        ...


# ═══════════════════════════════════════════════════════════════
# POLICY VOTER PORT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IPolicyVoter(Protocol):
    """A stateless rule contributing one vote to the bypass decision."""

    @property
    def name(self) -> str: ...

    def evaluate(self, context: AuthenticationContext) -> PolicyVerdict: ...


__all__: list[str] = [
    "ISessionStore",
    "IClock",
    "ICodeGenerator",
    "IEmailProvider",
    "IPolicyVoter",
]
