"""Bypass policy: decides whether an attempt needs the email code.

A fixed, ordered chain of voters. The first voter that does not abstain
decides; if all abstain, the code is required.

Example:
    ```python
    engine = BypassPolicyEngine.from_settings(settings)
    if engine.requires_otp(context):
        await manager.issue_or_reuse(context, settings)
    ```
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import TYPE_CHECKING

from .ports import IPolicyVoter

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .config import OtpSettings
    from .context import AuthenticationContext

logger = logging.getLogger(__name__)

SKIP = "skip"
FORCE = "force"

_HEADER_FLAGS = re.IGNORECASE | re.DOTALL


class PolicyVerdict(Enum):
    """One voter's opinion on the current attempt."""

    SKIP_OTP = "skip_otp"
    FORCE_OTP = "force_otp"
    ABSTAIN = "abstain"


def _verdict_for(value: str | None, *, ignore_case: bool = False) -> PolicyVerdict:
    if value is None:
        return PolicyVerdict.ABSTAIN
    value = value.strip()
    if ignore_case:
        value = value.lower()
    if value == SKIP:
        return PolicyVerdict.SKIP_OTP
    if value == FORCE:
        return PolicyVerdict.FORCE_OTP
    return PolicyVerdict.ABSTAIN


# ═══════════════════════════════════════════════════════════════
# VOTERS
# ═══════════════════════════════════════════════════════════════


class UserAttributeVoter(IPolicyVoter):
    """Votes from a per-user attribute holding ``skip`` or ``force``."""

    name = "user_attribute"

    def __init__(self, attribute_name: str | None) -> None:
        self.attribute_name = attribute_name

    def evaluate(self, context: AuthenticationContext) -> PolicyVerdict:
        if not self.attribute_name:
            return PolicyVerdict.ABSTAIN
        return _verdict_for(context.user.first_attribute(self.attribute_name))


class RoleVoter(IPolicyVoter):
    """Votes from role membership; the skip role is checked first."""

    name = "role"

    def __init__(self, skip_role: str | None = None, force_role: str | None = None) -> None:
        self.skip_role = skip_role
        self.force_role = force_role

    def evaluate(self, context: AuthenticationContext) -> PolicyVerdict:
        if self.skip_role and context.user.has_role(self.skip_role):
            return PolicyVerdict.SKIP_OTP
        if self.force_role and context.user.has_role(self.force_role):
            return PolicyVerdict.FORCE_OTP
        return PolicyVerdict.ABSTAIN


class HeaderPatternVoter(IPolicyVoter):
    """Votes when a request header matches a configured pattern.

    Each header value is rendered as ``"<name>: <value>"`` (both trimmed) and
    the pattern must match the whole line, case-insensitively. Patterns are
    compiled when reached, skip first. A skip match returns before the force
    pattern is compiled; any pattern that fails to compile when reached makes
    this voter abstain. It never raises.
    """

    name = "header_pattern"

    def __init__(
        self,
        skip_pattern: str | None = None,
        force_pattern: str | None = None,
    ) -> None:
        self.skip_pattern = skip_pattern
        self.force_pattern = force_pattern

    def evaluate(self, context: AuthenticationContext) -> PolicyVerdict:
        if not self.skip_pattern and not self.force_pattern:
            return PolicyVerdict.ABSTAIN

        lines = [f"{name.strip()}: {value.strip()}" for name, value in context.iter_headers()]
        try:
            if self.skip_pattern and self._any_match(self.skip_pattern, lines):
                return PolicyVerdict.SKIP_OTP
            if self.force_pattern and self._any_match(self.force_pattern, lines):
                return PolicyVerdict.FORCE_OTP
        except re.error as e:
            logger.error(f"Malformed header pattern, ignoring header rules: {e}")
        return PolicyVerdict.ABSTAIN

    @staticmethod
    def _any_match(pattern: str, lines: Iterable[str]) -> bool:
        compiled = re.compile(pattern, _HEADER_FLAGS)
        return any(compiled.fullmatch(line) for line in lines)


class DefaultOutcomeVoter(IPolicyVoter):
    """Last voter in the chain: the configured default, if any."""

    name = "default_outcome"

    def __init__(self, outcome: str | None = None) -> None:
        self.outcome = outcome

    def evaluate(self, context: AuthenticationContext) -> PolicyVerdict:
        return _verdict_for(self.outcome, ignore_case=True)


# ═══════════════════════════════════════════════════════════════
# ENGINE
# ═══════════════════════════════════════════════════════════════


class BypassPolicyEngine:
    """Runs the voters in order; the first non-abstaining verdict wins."""

    def __init__(self, voters: Iterable[IPolicyVoter]) -> None:
        self.voters: tuple[IPolicyVoter, ...] = tuple(voters)

    @classmethod
    def from_settings(cls, settings: OtpSettings) -> BypassPolicyEngine:
        """Default chain: attribute, role, header, default outcome."""
        return cls(
            (
                UserAttributeVoter(settings.otp_control_user_attribute),
                RoleVoter(settings.skip_otp_role, settings.force_otp_role),
                HeaderPatternVoter(
                    settings.skip_otp_header_pattern,
                    settings.force_otp_header_pattern,
                ),
                DefaultOutcomeVoter(settings.default_otp_outcome),
            )
        )

    def evaluate(self, context: AuthenticationContext) -> PolicyVerdict:
        for voter in self.voters:
            verdict = voter.evaluate(context)
            if verdict is not PolicyVerdict.ABSTAIN:
                logger.debug(
                    f"Voter {voter.name} decided {verdict.value} for {context.user.username}"
                )
                return verdict
        return PolicyVerdict.ABSTAIN

    def requires_otp(self, context: AuthenticationContext) -> bool:
        """True unless some voter said skip."""
        return self.evaluate(context) is not PolicyVerdict.SKIP_OTP


__all__: list[str] = [
    "PolicyVerdict",
    "UserAttributeVoter",
    "RoleVoter",
    "HeaderPatternVoter",
    "DefaultOutcomeVoter",
    "BypassPolicyEngine",
]
