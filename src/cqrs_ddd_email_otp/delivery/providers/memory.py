"""In-memory provider for test assertions."""

from __future__ import annotations

import asyncio
import logging

from ...exceptions import EmailSendError
from ...ports import IEmailProvider
from ..message import EmailMessage

logger = logging.getLogger(__name__)


class InMemoryEmailProvider(IEmailProvider):
    """
    Test double (Fake) that stores messages in a list for assertions.

    Can be switched to fail, hang, or report itself unavailable.
    """

    name = "in-memory"

    def __init__(
        self,
        name: str = "in-memory",
        *,
        available: bool = True,
        fail_with: str | None = None,
        delay: float = 0.0,
    ) -> None:
        self.name = name
        self.available = available
        self.fail_with = fail_with
        self.delay = delay
        self.sent_messages: list[EmailMessage] = []
        self.send_calls = 0

    def is_available(self) -> bool:
        return self.available

    async def send_email(self, message: EmailMessage) -> None:
        self.send_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise EmailSendError(self.name, self.fail_with)
        self.sent_messages.append(message)

    @property
    def last_message(self) -> EmailMessage | None:
        return self.sent_messages[-1] if self.sent_messages else None

    def assert_sent(self, recipient: str, count: int = 1) -> None:
        """Helper for test assertions."""
        matches = [m for m in self.sent_messages if m.to == recipient]
        if len(matches) != count:
            raise AssertionError(
                f"Expected {count} messages to {recipient} via {self.name}, "
                f"but found {len(matches)}."
            )

    def clear(self) -> None:
        self.sent_messages.clear()
        self.send_calls = 0


__all__: list[str] = ["InMemoryEmailProvider"]
