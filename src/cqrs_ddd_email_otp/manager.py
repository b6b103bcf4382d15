"""Challenge lifecycle: issue, resend, validate and reset the email code."""

from __future__ import annotations

import hmac
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .challenge import ChallengeNotes, OtpChallenge
from .clock import SecretsCodeGenerator, SystemClock
from .delivery.dispatcher import DeliveryDispatcher
from .delivery.templates import CodeEmailRenderer
from .exceptions import CooldownActiveError, DeliveryFailedError, RecipientMissingError

if TYPE_CHECKING:
    from .config import OtpSettings
    from .context import AuthenticationContext
    from .delivery.message import DeliveryAttempt
    from .ports import IClock, ICodeGenerator, IEmailProvider

logger = logging.getLogger(__name__)

_MAX_CODE_DRAWS = 32


def _delivery_key(settings: OtpSettings) -> tuple[object, ...]:
    """The settings fields a dispatcher depends on."""
    return (
        settings.email_provider_type,
        settings.enable_fallback,
        settings.simulation_mode,
        settings.delivery_timeout,
        settings.credentials,
    )


class VerifyResult(Enum):
    """Outcome of checking a submitted code. Never raised."""

    VALID = "valid"
    INVALID = "invalid"
    EXPIRED = "expired"
    NO_ACTIVE_CHALLENGE = "no_active_challenge"


@dataclass(frozen=True)
class IssueResult:
    """The challenge now in the session and how it got there.

    Attributes:
        challenge: The stored challenge.
        attempts: Delivery attempts; empty when an existing code was reused.
        reused: True when no new code was generated or sent.
    """

    challenge: OtpChallenge
    attempts: tuple[DeliveryAttempt, ...] = field(default_factory=tuple)
    reused: bool = False


class OtpChallengeManager:
    """Owns the code stored in the attempt's session.

    Configuration is passed per call. Dispatchers are resolved once per
    distinct delivery configuration and then reused. A replacement code never
    equals the one it replaces.

    Example:
        ```python
        manager = OtpChallengeManager(builtin=SmtpEmailProvider(host="mail"))
        await manager.issue_or_reuse(context, settings)
        result = await manager.validate(context, "042137")
        ```
    """

    def __init__(
        self,
        *,
        builtin: IEmailProvider | None = None,
        dispatcher: DeliveryDispatcher | None = None,
        renderer: CodeEmailRenderer | None = None,
        clock: IClock | None = None,
        code_generator: ICodeGenerator | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            builtin: The host's own mail provider, used as primary or fallback.
            dispatcher: A fixed dispatcher; overrides per-settings resolution.
            renderer: Email renderer (defaults to the stock templates).
            clock: Time source (defaults to the system clock).
            code_generator: Code source (defaults to ``secrets``).
        """
        if builtin is None and dispatcher is None:
            raise ValueError("Either builtin or dispatcher is required")
        self.builtin = builtin
        self.renderer = renderer or CodeEmailRenderer()
        self.clock = clock or SystemClock()
        self.code_generator = code_generator or SecretsCodeGenerator()
        self._dispatcher = dispatcher
        self._dispatchers: dict[tuple[object, ...], DeliveryDispatcher] = {}
        self._overrides_logged: set[tuple[object, ...]] = set()

    def dispatcher_for(self, settings: OtpSettings) -> DeliveryDispatcher:
        """Dispatcher for ``settings``, resolved once per delivery configuration."""
        key = _delivery_key(settings)
        if self._dispatcher is not None:
            self._log_fixed_override(settings, key)
            return self._dispatcher
        dispatcher = self._dispatchers.get(key)
        if dispatcher is None:
            if self.builtin is None:
                raise ValueError("A builtin provider is required to resolve dispatchers")
            dispatcher = DeliveryDispatcher.from_settings(settings, builtin=self.builtin)
            self._dispatchers[key] = dispatcher
        return dispatcher

    def _log_fixed_override(self, settings: OtpSettings, key: tuple[object, ...]) -> None:
        fixed = self._dispatcher
        if fixed is None or key in self._overrides_logged:
            return
        if (
            fixed.simulation_mode != settings.simulation_mode
            or fixed.enable_fallback != settings.enable_fallback
            or fixed.timeout != settings.delivery_timeout
            or settings.email_provider_type is not None
        ):
            self._overrides_logged.add(key)
            logger.warning(
                "Fixed delivery dispatcher in use; per-call delivery settings "
                "(provider type, fallback, simulation, timeout) are ignored"
            )

    async def issue_or_reuse(
        self,
        context: AuthenticationContext,
        settings: OtpSettings,
    ) -> IssueResult:
        """Return the live challenge, creating and sending one if needed.

        A stored code is returned as-is without re-delivery, so reloading the
        form never sends a second email.

        Raises:
            RecipientMissingError: The user has no email address.
            DeliveryFailedError: No provider delivered the code. The challenge
                is already stored and carried on the exception.
        """
        settings = settings.validated()
        notes = ChallengeNotes(context.session)

        if await notes.has_code():
            existing = await notes.load()
            if existing is not None:
                logger.debug(f"Reusing email code for {context.user.username}")
                return IssueResult(challenge=existing, reused=True)
            logger.warning(f"Discarding corrupt email code state for {context.user.username}")
            await notes.clear()

        return await self._issue(context, settings, previous_code=None)

    async def _issue(
        self,
        context: AuthenticationContext,
        settings: OtpSettings,
        previous_code: str | None,
    ) -> IssueResult:
        email = context.user.email
        if not email:
            raise RecipientMissingError(context.user.username)

        challenge = OtpChallenge.issue(
            self._new_code(settings.code_length, previous_code),
            self.clock.now(),
            settings.ttl_seconds,
            settings.resend_cooldown_seconds,
        )
        # Rendered before storing: a template error must leave no code behind
        message = self.renderer.render(
            to=email,
            code=challenge.code,
            ttl_seconds=settings.ttl_seconds,
            username=context.user.username,
            realm_name=context.realm_name or None,
        )
        # Stored before sending so a failed delivery can still be resent
        await ChallengeNotes(context.session).save(challenge)
        logger.info(
            f"Issued email code for {context.user.username}, "
            f"expires at {challenge.expires_at.isoformat()}"
        )

        try:
            attempts = await self.dispatcher_for(settings).send(message)
        except DeliveryFailedError as e:
            logger.error(f"Email code for {context.user.username} was not delivered: {e}")
            raise DeliveryFailedError(e.attempts, challenge) from e

        return IssueResult(challenge=challenge, attempts=tuple(attempts))

    async def resend(
        self,
        context: AuthenticationContext,
        settings: OtpSettings,
    ) -> IssueResult:
        """Replace the current code with a new one once the cooldown is over.

        Raises:
            CooldownActiveError: The cooldown has not elapsed yet.
            RecipientMissingError: The user has no email address.
            DeliveryFailedError: No provider delivered the new code.
        """
        notes = ChallengeNotes(context.session)
        available_at = await notes.load_resend_available_at()
        now = self.clock.now()
        if available_at is not None and now < available_at:
            remaining = max(1, math.ceil((available_at - now).total_seconds()))
            logger.info(f"Resend for {context.user.username} refused, {remaining}s left")
            raise CooldownActiveError(remaining)

        previous_code = await notes.load_code()
        await notes.clear()
        return await self._issue(context, settings.validated(), previous_code)

    def _new_code(self, length: int, previous_code: str | None) -> str:
        """Draw a code that differs from the one being replaced."""
        for _ in range(_MAX_CODE_DRAWS):
            code = self.code_generator.generate(length)
            if code != previous_code:
                return code
        raise RuntimeError("Code generator keeps returning the previous code")

    async def validate(
        self,
        context: AuthenticationContext,
        submitted: str | None,
    ) -> VerifyResult:
        """Check a submitted code against the stored challenge."""
        challenge = await ChallengeNotes(context.session).load()
        if challenge is None:
            result = VerifyResult.NO_ACTIVE_CHALLENGE
        elif challenge.is_expired(self.clock.now()):
            result = VerifyResult.EXPIRED
        elif submitted is None:
            result = VerifyResult.INVALID
        elif hmac.compare_digest(
            submitted.strip().encode("utf-8"), challenge.code.encode("utf-8")
        ):
            result = VerifyResult.VALID
        else:
            result = VerifyResult.INVALID

        logger.info(f"Email code check for {context.user.username}: {result.value}")
        return result

    async def reset(self, context: AuthenticationContext) -> None:
        """Remove the stored challenge. Safe to call when there is none."""
        await ChallengeNotes(context.session).clear()


__all__: list[str] = ["OtpChallengeManager", "VerifyResult", "IssueResult"]
