"""Flow orchestrator: policy, then challenge, then verification.

The host calls ``authenticate`` when the step starts and ``submit`` with the
posted form fields. Results carry message keys only; provider errors and
exception text stay in the logs.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import CooldownActiveError, DeliveryFailedError
from .manager import IssueResult, OtpChallengeManager, VerifyResult
from .policy import BypassPolicyEngine, PolicyVerdict

if TYPE_CHECKING:
    from .config import OtpSettings
    from .context import AuthenticatedUser, AuthenticationContext
    from .ports import IEmailProvider

logger = logging.getLogger(__name__)

# Reserved form fields
CANCEL_FIELD = "cancel"
RESEND_FIELD = "resend"
CODE_FIELD = "code"

# Message keys
DELIVERY_FAILED = "delivery_failed"
RESEND_COOLDOWN = "resend_cooldown"
INVALID_CODE = "invalid_code"
EXPIRED_CODE = "expired_code"
NO_ACTIVE_CHALLENGE = "no_active_challenge"


class FlowState(Enum):
    START = "start"
    POLICY_EVALUATED = "policy_evaluated"
    CHALLENGE_ISSUED = "challenge_issued"
    VERIFIED = "verified"
    EXPIRED = "expired"
    INVALID = "invalid"
    ABANDONED = "abandoned"


_TERMINAL_STATES = frozenset({FlowState.VERIFIED, FlowState.ABANDONED})


@dataclass(frozen=True)
class ChallengeState:
    """Where the attempt stands after ``authenticate``.

    Attributes:
        state: VERIFIED when policy skipped the code, else CHALLENGE_ISSUED.
        verdict: The raw policy verdict.
        expires_at: Expiry of the live code, if one was issued.
        warning: ``delivery_failed`` when the code could not be sent.
    """

    state: FlowState
    verdict: PolicyVerdict
    expires_at: datetime | None = None
    warning: str | None = None

    @property
    def verified(self) -> bool:
        return self.state is FlowState.VERIFIED


@dataclass(frozen=True)
class FlowResult:
    """Outcome of one form submission."""

    state: FlowState
    error: str | None = None
    warning: str | None = None
    cooldown_remaining: int | None = None
    expires_at: datetime | None = None

    @property
    def verified(self) -> bool:
        return self.state is FlowState.VERIFIED

    @property
    def is_terminal(self) -> bool:
        return self.state in _TERMINAL_STATES


class EmailOtpFlow:
    """Drives one email OTP step for the host login pipeline.

    Example:
        ```python
        flow = EmailOtpFlow.from_settings(settings, builtin=smtp_provider)

        state = await flow.authenticate(context)
        if not state.verified:
            result = await flow.submit(context, {"code": "042137"})
        ```
    """

    def __init__(
        self,
        manager: OtpChallengeManager,
        settings: OtpSettings,
        policy: BypassPolicyEngine | None = None,
    ) -> None:
        self.manager = manager
        self.settings = settings.validated()
        self.policy = policy or BypassPolicyEngine.from_settings(self.settings)

    @classmethod
    def from_settings(
        cls,
        settings: OtpSettings,
        *,
        builtin: IEmailProvider,
    ) -> EmailOtpFlow:
        return cls(OtpChallengeManager(builtin=builtin), settings)

    @staticmethod
    def configured_for(user: AuthenticatedUser) -> bool:
        """The step only applies to users with an email address."""
        return bool(user.email)

    async def authenticate(self, context: AuthenticationContext) -> ChallengeState:
        """Start the step: consult the policy and issue a code if required.

        Raises:
            RecipientMissingError: The user has no email address.
        """
        verdict = self.policy.evaluate(context)
        logger.debug(f"Policy verdict for {context.user.username}: {verdict.value}")

        if verdict is PolicyVerdict.SKIP_OTP:
            logger.info(f"Email code skipped by policy for {context.user.username}")
            return ChallengeState(state=FlowState.VERIFIED, verdict=verdict)

        try:
            issued = await self.manager.issue_or_reuse(context, self.settings)
        except DeliveryFailedError as e:
            return ChallengeState(
                state=FlowState.CHALLENGE_ISSUED,
                verdict=verdict,
                expires_at=e.challenge.expires_at if e.challenge else None,
                warning=DELIVERY_FAILED,
            )
        return ChallengeState(
            state=FlowState.CHALLENGE_ISSUED,
            verdict=verdict,
            expires_at=issued.challenge.expires_at,
        )

    async def submit(
        self,
        context: AuthenticationContext,
        form: Mapping[str, str | None],
    ) -> FlowResult:
        """Handle a posted form: cancel, resend or a code."""
        if CANCEL_FIELD in form:
            return await self.cancel(context)
        if RESEND_FIELD in form:
            return await self._resend(context)
        return await self._verify(context, form.get(CODE_FIELD))

    async def cancel(self, context: AuthenticationContext) -> FlowResult:
        """Abandon the step from any state. Always clears the code."""
        logger.info(f"Email code step abandoned by {context.user.username}")
        await self.manager.reset(context)
        return FlowResult(state=FlowState.ABANDONED)

    async def _resend(self, context: AuthenticationContext) -> FlowResult:
        try:
            issued = await self.manager.resend(context, self.settings)
        except CooldownActiveError as e:
            return FlowResult(
                state=FlowState.CHALLENGE_ISSUED,
                error=RESEND_COOLDOWN,
                cooldown_remaining=e.remaining_seconds,
            )
        except DeliveryFailedError as e:
            return FlowResult(
                state=FlowState.CHALLENGE_ISSUED,
                warning=DELIVERY_FAILED,
                expires_at=e.challenge.expires_at if e.challenge else None,
            )
        return self._issued(issued)

    async def _verify(self, context: AuthenticationContext, code: str | None) -> FlowResult:
        result = await self.manager.validate(context, code)

        if result is VerifyResult.VALID:
            await self.manager.reset(context)
            return FlowResult(state=FlowState.VERIFIED)

        if result is VerifyResult.EXPIRED:
            # Notes stay so the resend cooldown still applies
            return FlowResult(state=FlowState.EXPIRED, error=EXPIRED_CODE)

        if result is VerifyResult.INVALID:
            return FlowResult(state=FlowState.CHALLENGE_ISSUED, error=INVALID_CODE)

        try:
            issued = await self.manager.issue_or_reuse(context, self.settings)
        except DeliveryFailedError as e:
            return FlowResult(
                state=FlowState.CHALLENGE_ISSUED,
                error=NO_ACTIVE_CHALLENGE,
                warning=DELIVERY_FAILED,
                expires_at=e.challenge.expires_at if e.challenge else None,
            )
        return self._issued(issued, error=NO_ACTIVE_CHALLENGE)

    @staticmethod
    def _issued(issued: IssueResult, error: str | None = None) -> FlowResult:
        return FlowResult(
            state=FlowState.CHALLENGE_ISSUED,
            error=error,
            expires_at=issued.challenge.expires_at,
        )


__all__: list[str] = [
    "EmailOtpFlow",
    "FlowState",
    "FlowResult",
    "ChallengeState",
]
