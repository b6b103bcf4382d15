"""Delivery dispatcher: one primary attempt, one built-in fallback."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ..exceptions import AllProvidersFailedError, ConfigurationError, EmailSendError
from .factory import EmailProviderFactory
from .message import DeliveryAttempt, EmailMessage, EmailProviderType
from .simulation import simulate_delivery

if TYPE_CHECKING:
    from ..config import OtpSettings
    from ..ports import IEmailProvider

logger = logging.getLogger(__name__)


class DeliveryDispatcher:
    """Delivers an ``EmailMessage`` with at most one automatic fallback.

    The primary provider is resolved once, when the dispatcher is built.
    If it is unavailable, fails, raises or times out, and fallback is enabled,
    the built-in provider gets exactly one more try. A primary that could not
    be configured counts as a failed attempt without any network call.

    Example:
        ```python
        dispatcher = DeliveryDispatcher.from_settings(settings, builtin=smtp)
        attempts = await dispatcher.send(message)
        ```
    """

    def __init__(
        self,
        *,
        builtin: IEmailProvider,
        primary: IEmailProvider | None = None,
        enable_fallback: bool = True,
        simulation_mode: bool = False,
        timeout: float = 10.0,
        configuration_error: ConfigurationError | None = None,
    ) -> None:
        self.builtin = builtin
        self.primary = primary if primary is not None or configuration_error else builtin
        self.enable_fallback = enable_fallback
        self.simulation_mode = simulation_mode
        self.timeout = timeout
        self.configuration_error = configuration_error

    @classmethod
    def from_settings(
        cls,
        settings: OtpSettings,
        *,
        builtin: IEmailProvider,
    ) -> DeliveryDispatcher:
        """Resolve the configured provider into a ready dispatcher.

        Missing credentials are logged, not raised; the send path then goes
        straight to the fallback.
        """
        provider_type = EmailProviderType.from_string(settings.email_provider_type)
        primary: IEmailProvider | None = None
        configuration_error: ConfigurationError | None = None
        try:
            primary = EmailProviderFactory.create(
                provider_type,
                settings.credentials,
                builtin=builtin,
                timeout=settings.delivery_timeout,
            )
        except ConfigurationError as e:
            logger.error(f"Email provider {provider_type.display_name} misconfigured: {e}")
            configuration_error = e

        return cls(
            builtin=builtin,
            primary=primary,
            enable_fallback=settings.enable_fallback,
            simulation_mode=settings.simulation_mode,
            timeout=settings.delivery_timeout,
            configuration_error=configuration_error,
        )

    @property
    def primary_is_builtin(self) -> bool:
        return self.primary is self.builtin

    async def send(self, message: EmailMessage) -> list[DeliveryAttempt]:
        """Send the message.

        Returns:
            The attempts made, the last one successful.

        Raises:
            AllProvidersFailedError: Every attempted provider failed.
        """
        if self.simulation_mode:
            return [simulate_delivery(message)]

        attempts: list[DeliveryAttempt] = []

        if self.primary is None:
            error = self.configuration_error
            attempts.append(
                DeliveryAttempt.failed(
                    getattr(error, "provider", None) or "primary",
                    f"configuration error: {error}",
                )
            )
        else:
            attempt = await self._attempt(self.primary, message)
            attempts.append(attempt)
            if attempt.succeeded:
                return attempts

        if self.enable_fallback and not self.primary_is_builtin:
            logger.warning(f"Falling back to {self.builtin.name} for {message.to}")
            attempt = await self._attempt(self.builtin, message)
            attempts.append(attempt)
            if attempt.succeeded:
                return attempts

        logger.error(
            f"All email providers failed for {message.to}: "
            + "; ".join(f"{a.provider}={a.status.value}" for a in attempts)
        )
        raise AllProvidersFailedError(attempts)

    async def _attempt(self, provider: IEmailProvider, message: EmailMessage) -> DeliveryAttempt:
        if not provider.is_available():
            logger.warning(f"Email provider {provider.name} is not available, skipping")
            return DeliveryAttempt.skipped(provider.name, "provider not available")

        try:
            await asyncio.wait_for(provider.send_email(message), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Email provider {provider.name} timed out after {self.timeout}s")
            return DeliveryAttempt.failed(provider.name, f"timed out after {self.timeout}s")
        except EmailSendError as e:
            return DeliveryAttempt.failed(provider.name, e.reason)
        except Exception as e:  # noqa: BLE001
            logger.error(f"Email provider {provider.name} raised: {e}", exc_info=True)
            return DeliveryAttempt.failed(provider.name, str(e))

        logger.debug(f"Email delivered to {message.to} via {provider.name}")
        return DeliveryAttempt.sent(provider.name)


__all__: list[str] = ["DeliveryDispatcher"]
