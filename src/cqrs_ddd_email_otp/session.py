"""In-memory session store for development and testing.

WARNING: This implementation is NOT suitable for production use.
The host identity provider owns the real attempt-scoped store.
"""

from __future__ import annotations

from .ports import ISessionStore


class InMemorySessionStore(ISessionStore):
    """Dictionary-backed scratch store for one authentication attempt.

    Example:
        ```python
        session = InMemorySessionStore()
        await session.set("email_otp.code", "123456")
        code = await session.get("email_otp.code")
        ```
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._notes: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._notes.get(key)

    async def set(self, key: str, value: str) -> None:
        self._notes[key] = value

    async def remove(self, key: str) -> None:
        self._notes.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Copy of all notes, for test assertions."""
        return dict(self._notes)

    def clear_all(self) -> None:
        self._notes.clear()


__all__: list[str] = ["InMemorySessionStore"]
