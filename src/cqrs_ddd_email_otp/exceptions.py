"""Email OTP exception hierarchy.

Verification outcomes (valid, invalid, expired, no active challenge) are NOT
exceptions; they are returned as ``VerifyResult`` values. The classes below
cover configuration problems, delivery exhaustion and resend throttling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .challenge import OtpChallenge
    from .delivery.message import DeliveryAttempt

# ═══════════════════════════════════════════════════════════════
# BASE ERROR
# ═══════════════════════════════════════════════════════════════


class EmailOtpError(Exception):
    """Root exception for the email OTP package."""


# ═══════════════════════════════════════════════════════════════
# CONFIGURATION ERRORS
# ═══════════════════════════════════════════════════════════════


class ConfigurationError(EmailOtpError):
    """Raised when a provider is missing required credentials.

    Fatal for that provider only. The dispatcher records it and falls back
    to the built-in provider when fallback is enabled.

    Attributes:
        provider: Name of the provider that could not be configured.
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class RecipientMissingError(EmailOtpError):
    """Raised when the user being authenticated has no email address."""

    def __init__(self, username: str | None = None) -> None:
        self.username = username
        super().__init__(f"User {username!r} has no email address")


# ═══════════════════════════════════════════════════════════════
# DELIVERY ERRORS
# ═══════════════════════════════════════════════════════════════


class DeliveryError(EmailOtpError):
    """Base class for delivery failures."""


class EmailSendError(DeliveryError):
    """Raised by a provider when a single send attempt fails."""

    def __init__(self, provider: str, reason: str) -> None:
        self.provider = provider
        self.reason = reason
        super().__init__(f"Failed to send email via {provider}: {reason}")


class DeliveryFailedError(DeliveryError):
    """Raised when no provider managed to deliver the code.

    Recoverable: the challenge is still recorded so the user can request a
    resend once the cooldown has elapsed.

    Attributes:
        attempts: Every attempt made, in order.
        challenge: The persisted challenge, when raised by the manager.
    """

    def __init__(
        self,
        attempts: list[DeliveryAttempt],
        challenge: OtpChallenge | None = None,
    ) -> None:
        self.attempts = list(attempts)
        self.challenge = challenge
        providers = ", ".join(a.provider for a in self.attempts) or "none"
        super().__init__(f"Email delivery failed (attempted: {providers})")


class AllProvidersFailedError(DeliveryFailedError):
    """Raised by the dispatcher when every attempted provider failed."""


# ═══════════════════════════════════════════════════════════════
# THROTTLING
# ═══════════════════════════════════════════════════════════════


class CooldownActiveError(EmailOtpError):
    """Raised when a resend is requested before the cooldown elapsed.

    Attributes:
        remaining_seconds: Whole seconds until a resend is allowed (>= 1).
    """

    def __init__(self, remaining_seconds: int) -> None:
        self.remaining_seconds = remaining_seconds
        super().__init__(
            f"Please wait {remaining_seconds} seconds before requesting a new code"
        )


__all__: list[str] = [
    "EmailOtpError",
    "ConfigurationError",
    "RecipientMissingError",
    "DeliveryError",
    "EmailSendError",
    "DeliveryFailedError",
    "AllProvidersFailedError",
    "CooldownActiveError",
]
