"""Tests for the bypass policy engine."""

from __future__ import annotations

import logging

import pytest

from cqrs_ddd_email_otp.config import OtpSettings
from cqrs_ddd_email_otp.context import AuthenticatedUser, AuthenticationContext
from cqrs_ddd_email_otp.policy import (
    BypassPolicyEngine,
    DefaultOutcomeVoter,
    HeaderPatternVoter,
    PolicyVerdict,
    RoleVoter,
    UserAttributeVoter,
)
from cqrs_ddd_email_otp.session import InMemorySessionStore


def make_context(
    *,
    attributes: dict[str, tuple[str, ...]] | None = None,
    roles: set[str] | None = None,
    headers: dict[str, str | list[str]] | None = None,
) -> AuthenticationContext:
    return AuthenticationContext(
        session=InMemorySessionStore(),
        user=AuthenticatedUser(
            user_id="u-1",
            username="alice",
            email="alice@example.com",
            attributes=attributes or {},
            roles=frozenset(roles or ()),
        ),
        headers=headers or {},
    )


class TestUserAttributeVoter:
    """Test UserAttributeVoter."""

    @pytest.mark.parametrize(
        ("values", "expected"),
        [
            (("skip",), PolicyVerdict.SKIP_OTP),
            ((" force ",), PolicyVerdict.FORCE_OTP),
            (("force", "skip"), PolicyVerdict.FORCE_OTP),
            (("maybe",), PolicyVerdict.ABSTAIN),
            ((), PolicyVerdict.ABSTAIN),
        ],
    )
    def test_first_value_decides(self, values, expected) -> None:
        context = make_context(attributes={"otp": values})

        assert UserAttributeVoter("otp").evaluate(context) is expected

    def test_unconfigured_abstains(self) -> None:
        context = make_context(attributes={"otp": ("skip",)})

        assert UserAttributeVoter(None).evaluate(context) is PolicyVerdict.ABSTAIN


class TestRoleVoter:
    """Test RoleVoter."""

    def test_skip_checked_before_force(self) -> None:
        context = make_context(roles={"trusted", "admin"})

        assert RoleVoter("trusted", "admin").evaluate(context) is PolicyVerdict.SKIP_OTP

    def test_force_role(self) -> None:
        context = make_context(roles={"admin"})

        assert RoleVoter("trusted", "admin").evaluate(context) is PolicyVerdict.FORCE_OTP

    def test_unset_slots_abstain(self) -> None:
        context = make_context(roles={"trusted", "admin"})

        assert RoleVoter().evaluate(context) is PolicyVerdict.ABSTAIN


class TestHeaderPatternVoter:
    """Test HeaderPatternVoter."""

    def test_full_match_case_insensitive(self) -> None:
        context = make_context(headers={" X-Forwarded-For ": " 10.0.0.7 "})
        voter = HeaderPatternVoter(skip_pattern=r"x-forwarded-for: 10\.0\.0\.\d+")

        assert voter.evaluate(context) is PolicyVerdict.SKIP_OTP

    def test_partial_match_is_not_enough(self) -> None:
        context = make_context(headers={"X-Forwarded-For": "10.0.0.7"})
        voter = HeaderPatternVoter(skip_pattern=r"10\.0\.0\.7")

        assert voter.evaluate(context) is PolicyVerdict.ABSTAIN

    def test_every_value_is_checked(self) -> None:
        context = make_context(headers={"X-Client": ["mobile", "trusted-kiosk"]})
        voter = HeaderPatternVoter(force_pattern=r"X-Client: trusted-.*")

        assert voter.evaluate(context) is PolicyVerdict.FORCE_OTP

    def test_dot_matches_newline(self) -> None:
        context = make_context(headers={"X-Note": "line1\nline2"})

        assert HeaderPatternVoter(skip_pattern=r"X-Note: .*").evaluate(context) is (
            PolicyVerdict.SKIP_OTP
        )

    def test_skip_wins_over_force(self) -> None:
        context = make_context(headers={"X-Zone": "internal"})
        voter = HeaderPatternVoter(skip_pattern=r".*internal", force_pattern=r".*")

        assert voter.evaluate(context) is PolicyVerdict.SKIP_OTP

    def test_malformed_pattern_abstains(self, caplog: pytest.LogCaptureFixture) -> None:
        context = make_context(headers={"X-Zone": "internal"})
        voter = HeaderPatternVoter(force_pattern="([unclosed")

        with caplog.at_level(logging.ERROR, logger="cqrs_ddd_email_otp.policy"):
            verdict = voter.evaluate(context)

        assert verdict is PolicyVerdict.ABSTAIN
        assert "Malformed header pattern" in caplog.text

    def test_malformed_skip_silences_valid_force(self) -> None:
        context = make_context(headers={"X-Zone": "internal"})
        voter = HeaderPatternVoter(skip_pattern="([unclosed", force_pattern=r"X-Zone: .*")

        assert voter.evaluate(context) is PolicyVerdict.ABSTAIN

    def test_matching_skip_returns_before_malformed_force(self) -> None:
        context = make_context(headers={"X-Zone": "internal"})
        voter = HeaderPatternVoter(skip_pattern=r"X-Zone: internal", force_pattern="([unclosed")

        assert voter.evaluate(context) is PolicyVerdict.SKIP_OTP


class TestDefaultOutcomeVoter:
    """Test DefaultOutcomeVoter."""

    @pytest.mark.parametrize(
        ("outcome", "expected"),
        [
            ("skip", PolicyVerdict.SKIP_OTP),
            (" FORCE ", PolicyVerdict.FORCE_OTP),
            ("sometimes", PolicyVerdict.ABSTAIN),
            (None, PolicyVerdict.ABSTAIN),
        ],
    )
    def test_outcome(self, outcome, expected) -> None:
        assert DefaultOutcomeVoter(outcome).evaluate(make_context()) is expected


class TestBypassPolicyEngine:
    """Test voter precedence."""

    def test_attribute_beats_role(self) -> None:
        engine = BypassPolicyEngine.from_settings(
            OtpSettings(otp_control_user_attribute="otp", force_otp_role="admin")
        )
        context = make_context(attributes={"otp": ("skip",)}, roles={"admin"})

        assert engine.evaluate(context) is PolicyVerdict.SKIP_OTP
        assert not engine.requires_otp(context)

    def test_role_beats_header(self) -> None:
        engine = BypassPolicyEngine.from_settings(
            OtpSettings(force_otp_role="admin", skip_otp_header_pattern=".*")
        )
        context = make_context(roles={"admin"}, headers={"X-A": "b"})

        assert engine.evaluate(context) is PolicyVerdict.FORCE_OTP

    def test_header_beats_default(self) -> None:
        engine = BypassPolicyEngine.from_settings(
            OtpSettings(force_otp_header_pattern="X-Risk: high", default_otp_outcome="skip")
        )
        context = make_context(headers={"X-Risk": "high"})

        assert engine.evaluate(context) is PolicyVerdict.FORCE_OTP

    def test_malformed_force_pattern_with_default_skip(self) -> None:
        engine = BypassPolicyEngine.from_settings(
            OtpSettings(force_otp_header_pattern="(", default_otp_outcome="skip")
        )
        context = make_context(headers={"X-A": "b"})

        assert engine.evaluate(context) is PolicyVerdict.SKIP_OTP

    def test_all_abstain_requires_otp(self) -> None:
        engine = BypassPolicyEngine.from_settings(OtpSettings())
        context = make_context()

        assert engine.evaluate(context) is PolicyVerdict.ABSTAIN
        assert engine.requires_otp(context)

    def test_default_chain_order(self) -> None:
        engine = BypassPolicyEngine.from_settings(OtpSettings())

        assert [voter.name for voter in engine.voters] == [
            "user_attribute",
            "role",
            "header_pattern",
            "default_outcome",
        ]

    def test_custom_chain(self) -> None:
        engine = BypassPolicyEngine([DefaultOutcomeVoter("force")])

        assert engine.evaluate(make_context()) is PolicyVerdict.FORCE_OTP
