"""Test configuration for cqrs-ddd-email-otp."""

from __future__ import annotations

import pytest

from cqrs_ddd_email_otp.clock import FrozenClock
from cqrs_ddd_email_otp.config import OtpSettings
from cqrs_ddd_email_otp.context import AuthenticatedUser, AuthenticationContext
from cqrs_ddd_email_otp.delivery.dispatcher import DeliveryDispatcher
from cqrs_ddd_email_otp.delivery.providers.memory import InMemoryEmailProvider
from cqrs_ddd_email_otp.manager import OtpChallengeManager
from cqrs_ddd_email_otp.session import InMemorySessionStore

pytest_plugins = ["pytest_asyncio"]


class SequenceCodeGenerator:
    """Hands out predetermined codes, in order."""

    def __init__(self, *codes: str) -> None:
        self.codes = list(codes)
        self.calls: list[int] = []

    def generate(self, length: int) -> str:
        self.calls.append(length)
        return self.codes.pop(0)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def session() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def user() -> AuthenticatedUser:
    return AuthenticatedUser(
        user_id="user-123",
        username="alice",
        email="alice@example.com",
    )


@pytest.fixture
def context(session: InMemorySessionStore, user: AuthenticatedUser) -> AuthenticationContext:
    return AuthenticationContext(session=session, user=user, realm_name="Acme")


@pytest.fixture
def settings() -> OtpSettings:
    return OtpSettings()


@pytest.fixture
def builtin() -> InMemoryEmailProvider:
    return InMemoryEmailProvider("builtin")


@pytest.fixture
def dispatcher(builtin: InMemoryEmailProvider) -> DeliveryDispatcher:
    return DeliveryDispatcher(builtin=builtin)


@pytest.fixture
def codes() -> SequenceCodeGenerator:
    return SequenceCodeGenerator("042137", "918273", "555555")


@pytest.fixture
def manager(
    dispatcher: DeliveryDispatcher,
    clock: FrozenClock,
    codes: SequenceCodeGenerator,
) -> OtpChallengeManager:
    return OtpChallengeManager(dispatcher=dispatcher, clock=clock, code_generator=codes)
