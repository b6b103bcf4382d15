"""Time and randomness sources for code issuance."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from .ports import IClock, ICodeGenerator

_DIGITS = "0123456789"


class SystemClock(IClock):
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock(IClock):
    """Manually driven clock for tests and simulations.

    Example:
        ```python
        clock = FrozenClock()
        clock.advance(seconds=31)
        ```
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = moment

    def advance(self, *, seconds: float = 0, milliseconds: float = 0) -> None:
        self._now += timedelta(seconds=seconds, milliseconds=milliseconds)


class SecretsCodeGenerator(ICodeGenerator):
    """Draws every digit independently from the ``secrets`` CSPRNG."""

    def generate(self, length: int) -> str:
        if length <= 0:
            raise ValueError("Code length must be positive")
        return "".join(secrets.choice(_DIGITS) for _ in range(length))


__all__: list[str] = ["SystemClock", "FrozenClock", "SecretsCodeGenerator"]
