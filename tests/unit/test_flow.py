"""Tests for the EmailOtpFlow orchestrator."""

from __future__ import annotations

import pytest

from cqrs_ddd_email_otp.config import OtpSettings
from cqrs_ddd_email_otp.context import AuthenticatedUser, AuthenticationContext
from cqrs_ddd_email_otp.delivery.dispatcher import DeliveryDispatcher
from cqrs_ddd_email_otp.delivery.providers.memory import InMemoryEmailProvider
from cqrs_ddd_email_otp.exceptions import RecipientMissingError
from cqrs_ddd_email_otp.flow import EmailOtpFlow, FlowState
from cqrs_ddd_email_otp.manager import OtpChallengeManager
from cqrs_ddd_email_otp.policy import PolicyVerdict


@pytest.fixture
def flow(manager: OtpChallengeManager, settings: OtpSettings) -> EmailOtpFlow:
    return EmailOtpFlow(manager, settings)


class TestAuthenticate:
    """Test the entry point."""

    @pytest.mark.asyncio
    async def test_issues_challenge(self, flow, context, builtin) -> None:
        state = await flow.authenticate(context)

        assert state.state is FlowState.CHALLENGE_ISSUED
        assert state.verdict is PolicyVerdict.ABSTAIN
        assert state.expires_at is not None
        assert state.warning is None
        builtin.assert_sent("alice@example.com")

    @pytest.mark.asyncio
    async def test_skip_by_policy(self, manager, session, builtin) -> None:
        flow = EmailOtpFlow(manager, OtpSettings(skip_otp_role="trusted"))
        context = AuthenticationContext(
            session=session,
            user=AuthenticatedUser(
                user_id="u-1",
                username="alice",
                email="alice@example.com",
                roles=frozenset({"trusted"}),
            ),
        )

        state = await flow.authenticate(context)

        assert state.verified
        assert builtin.send_calls == 0
        assert session.snapshot() == {}

    @pytest.mark.asyncio
    async def test_delivery_failure_is_a_warning(self, clock, codes, context) -> None:
        builtin = InMemoryEmailProvider("builtin", fail_with="relay down")
        manager = OtpChallengeManager(
            dispatcher=DeliveryDispatcher(builtin=builtin), clock=clock, code_generator=codes
        )
        flow = EmailOtpFlow(manager, OtpSettings())

        state = await flow.authenticate(context)

        assert state.state is FlowState.CHALLENGE_ISSUED
        assert state.warning == "delivery_failed"
        assert state.expires_at is not None

    @pytest.mark.asyncio
    async def test_reload_does_not_resend(self, flow, context, builtin) -> None:
        await flow.authenticate(context)
        await flow.authenticate(context)

        builtin.assert_sent("alice@example.com", count=1)

    @pytest.mark.asyncio
    async def test_missing_email_is_fatal(self, flow, session) -> None:
        context = AuthenticationContext(
            session=session, user=AuthenticatedUser(user_id="u-2", username="bob")
        )

        assert not EmailOtpFlow.configured_for(context.user)
        with pytest.raises(RecipientMissingError):
            await flow.authenticate(context)


class TestSubmit:
    """Test form submissions."""

    @pytest.mark.asyncio
    async def test_wrong_then_right_code(self, flow, context, session) -> None:
        await flow.authenticate(context)

        wrong = await flow.submit(context, {"code": "000000"})
        assert wrong.state is FlowState.CHALLENGE_ISSUED
        assert wrong.error == "invalid_code"
        assert not wrong.is_terminal

        right = await flow.submit(context, {"code": "042137"})
        assert right.verified
        assert right.is_terminal
        assert session.snapshot() == {}

    @pytest.mark.asyncio
    async def test_expired_code_keeps_state(self, flow, context, session, clock) -> None:
        await flow.authenticate(context)
        clock.advance(seconds=300)

        result = await flow.submit(context, {"code": "042137"})

        assert result.state is FlowState.EXPIRED
        assert result.error == "expired_code"
        assert "email_otp.resend_available_at" in session.snapshot()

    @pytest.mark.asyncio
    async def test_resend_cooldown(self, flow, context, clock) -> None:
        await flow.authenticate(context)
        clock.advance(seconds=5)

        result = await flow.submit(context, {"resend": ""})

        assert result.state is FlowState.CHALLENGE_ISSUED
        assert result.error == "resend_cooldown"
        assert result.cooldown_remaining == 25

    @pytest.mark.asyncio
    async def test_resend_after_expiry(self, flow, context, clock, builtin) -> None:
        await flow.authenticate(context)
        clock.advance(seconds=301)
        assert (await flow.submit(context, {"code": "042137"})).state is FlowState.EXPIRED

        resent = await flow.submit(context, {"resend": "true"})
        verified = await flow.submit(context, {"code": "918273"})

        assert resent.state is FlowState.CHALLENGE_ISSUED
        assert resent.error is None
        assert verified.verified
        builtin.assert_sent("alice@example.com", count=2)

    @pytest.mark.asyncio
    async def test_resend_delivery_failure(self, flow, context, clock, builtin) -> None:
        await flow.authenticate(context)
        clock.advance(seconds=31)
        builtin.fail_with = "relay down"

        result = await flow.submit(context, {"resend": ""})

        assert result.state is FlowState.CHALLENGE_ISSUED
        assert result.warning == "delivery_failed"
        assert "relay down" not in repr(result)

    @pytest.mark.asyncio
    async def test_no_active_challenge_reissues(self, flow, context, builtin) -> None:
        result = await flow.submit(context, {"code": "123456"})

        assert result.state is FlowState.CHALLENGE_ISSUED
        assert result.error == "no_active_challenge"
        builtin.assert_sent("alice@example.com")

    @pytest.mark.asyncio
    async def test_cancel_clears_state(self, flow, context, session) -> None:
        await flow.authenticate(context)

        result = await flow.submit(context, {"cancel": "", "code": "042137"})

        assert result.state is FlowState.ABANDONED
        assert result.is_terminal
        assert session.snapshot() == {}

    @pytest.mark.asyncio
    async def test_cancel_without_challenge(self, flow, context) -> None:
        result = await flow.cancel(context)

        assert result.state is FlowState.ABANDONED


class TestFromSettings:
    """Test EmailOtpFlow.from_settings."""

    @pytest.mark.asyncio
    async def test_simulation_mode(self, context) -> None:
        builtin = InMemoryEmailProvider("builtin")
        flow = EmailOtpFlow.from_settings(
            OtpSettings.from_mapping({"simulationMode": "true", "length": "4"}),
            builtin=builtin,
        )

        state = await flow.authenticate(context)

        assert state.state is FlowState.CHALLENGE_ISSUED
        assert builtin.send_calls == 0
        assert len(await context.session.get("email_otp.code") or "") == 4
