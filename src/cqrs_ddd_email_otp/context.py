"""Per-attempt context handed in by the host for every call."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .ports import ISessionStore


class AuthenticatedUser(BaseModel):
    """Immutable view of the user being authenticated.

    Attributes:
        user_id: Host identifier of the user.
        username: Login name, shown in the code email.
        email: Destination address; None when the user has none.
        attributes: Multi-valued user attributes (first value wins for voting).
        roles: Effective role names, including composite/client roles.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    username: str
    email: str | None = None
    attributes: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    roles: frozenset[str] = frozenset()

    def first_attribute(self, name: str) -> str | None:
        values = self.attributes.get(name) or ()
        return values[0] if values else None

    def has_role(self, role: str) -> bool:
        return role in self.roles


def _normalize_headers(
    headers: Mapping[str, str | Sequence[str]] | None,
) -> dict[str, tuple[str, ...]]:
    normalized: dict[str, tuple[str, ...]] = {}
    for name, values in (headers or {}).items():
        if isinstance(values, str):
            normalized[name] = (values,)
        else:
            normalized[name] = tuple(values)
    return normalized


@dataclass(frozen=True)
class AuthenticationContext:
    """Everything one evaluation needs, read-only except for the session.

    Attributes:
        session: Attempt-scoped scratch store.
        user: The user being authenticated.
        headers: Inbound request headers as a multimap.
        realm_name: Display name used in the email subject.
    """

    session: ISessionStore
    user: AuthenticatedUser
    headers: Mapping[str, Any] = field(default_factory=dict)
    realm_name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _normalize_headers(self.headers))

    def iter_headers(self) -> Iterator[tuple[str, str]]:
        """Yield every (name, value) pair, one per header value."""
        for name, values in self.headers.items():
            for value in values:
                yield name, value


__all__: list[str] = ["AuthenticatedUser", "AuthenticationContext"]
