"""OTP challenge value object and its session-note codec.

The challenge lives in the host's string key-value store as three notes.
All parsing happens here, so "absent or unparseable means no challenge" is
decided in exactly one place.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from .ports import ISessionStore

logger = logging.getLogger(__name__)

CODE_NOTE = "email_otp.code"
EXPIRES_AT_NOTE = "email_otp.expires_at"
RESEND_AVAILABLE_AT_NOTE = "email_otp.resend_available_at"


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)


def to_epoch_millis(moment: datetime) -> int:
    return (moment - _EPOCH) // _MILLISECOND


def from_epoch_millis(value: int) -> datetime:
    return _EPOCH + value * _MILLISECOND


class OtpChallenge(BaseModel):
    """One outstanding verification attempt.

    Attributes:
        code: The decimal code sent to the user.
        issued_at: Issue time; None when loaded back from the session.
        expires_at: First instant at which the code is no longer accepted.
        resend_available_at: First instant at which a new code may be issued.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    issued_at: datetime | None = None
    expires_at: datetime
    resend_available_at: datetime

    @classmethod
    def issue(
        cls,
        code: str,
        now: datetime,
        ttl_seconds: int,
        resend_cooldown_seconds: int,
    ) -> OtpChallenge:
        return cls(
            code=code,
            issued_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
            resend_available_at=now + timedelta(seconds=resend_cooldown_seconds),
        )

    def is_expired(self, now: datetime) -> bool:
        # Expiry is exclusive of now
        return now >= self.expires_at

    def resend_wait(self, now: datetime) -> timedelta:
        """Time left before a resend is allowed (zero or negative when allowed)."""
        return self.resend_available_at - now

    def __repr__(self) -> str:
        return (
            f"OtpChallenge(code='***', expires_at={self.expires_at.isoformat()}, "
            f"resend_available_at={self.resend_available_at.isoformat()})"
        )

    __str__ = __repr__


def _parse_millis(raw: str | None, note: str) -> datetime | None:
    if raw is None:
        return None
    try:
        return from_epoch_millis(int(raw))
    except (ValueError, OverflowError):
        logger.warning(f"Discarding unparseable session note {note}")
        return None


class ChallengeNotes:
    """Reads and writes an ``OtpChallenge`` through an ``ISessionStore``.

    Write order: timestamps first, code last. Removal order: code first.
    The code note therefore commits the record; a half-written or
    half-removed record always loads as absent.
    """

    def __init__(self, session: ISessionStore) -> None:
        self._session = session

    async def has_code(self) -> bool:
        return await self._session.get(CODE_NOTE) is not None

    async def load_code(self) -> str | None:
        """Raw stored code, even when the rest of the record is unusable."""
        return await self._session.get(CODE_NOTE)

    async def load(self) -> OtpChallenge | None:
        """Return the stored challenge, or None when absent or corrupt."""
        code = await self._session.get(CODE_NOTE)
        if code is None:
            return None
        expires_at = _parse_millis(await self._session.get(EXPIRES_AT_NOTE), EXPIRES_AT_NOTE)
        if expires_at is None:
            return None
        resend_available_at = _parse_millis(
            await self._session.get(RESEND_AVAILABLE_AT_NOTE), RESEND_AVAILABLE_AT_NOTE
        )
        if resend_available_at is None:
            # Cooldown unknown: resend is allowed immediately
            resend_available_at = datetime.min.replace(tzinfo=timezone.utc)
        return OtpChallenge(
            code=code,
            expires_at=expires_at,
            resend_available_at=resend_available_at,
        )

    async def load_resend_available_at(self) -> datetime | None:
        """Cooldown deadline, readable even when the code note is gone."""
        return _parse_millis(
            await self._session.get(RESEND_AVAILABLE_AT_NOTE), RESEND_AVAILABLE_AT_NOTE
        )

    async def save(self, challenge: OtpChallenge) -> None:
        await self._session.set(EXPIRES_AT_NOTE, str(to_epoch_millis(challenge.expires_at)))
        await self._session.set(
            RESEND_AVAILABLE_AT_NOTE, str(to_epoch_millis(challenge.resend_available_at))
        )
        await self._session.set(CODE_NOTE, challenge.code)

    async def clear(self) -> None:
        await self._session.remove(CODE_NOTE)
        await self._session.remove(EXPIRES_AT_NOTE)
        await self._session.remove(RESEND_AVAILABLE_AT_NOTE)


__all__: list[str] = [
    "OtpChallenge",
    "ChallengeNotes",
    "CODE_NOTE",
    "EXPIRES_AT_NOTE",
    "RESEND_AVAILABLE_AT_NOTE",
]
