"""Caller identity and role checks.

Authentication belongs to the surrounding application. The engine only needs
a resolved Caller (id, role, verified flag); an IdentityProvider turns a
bearer token into one.

| Operation                         | Roles                               | Verified |
|-----------------------------------|-------------------------------------|----------|
| list / verify / stats             | law_enforcement, admin, developer   | no       |
| queue claim / release / review    | law_enforcement, admin, developer   | yes      |
| queue assign                      | admin, developer                    | yes      |
"""

import json
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from tip_triage.errors import ForbiddenError, PersistenceError


class Role(str, Enum):
    LAW_ENFORCEMENT = "law_enforcement"
    ADMIN = "admin"
    DEVELOPER = "developer"
    INVESTIGATOR = "investigator"
    FAMILY = "family"
    PUBLIC = "public"


INVESTIGATIVE_ROLES = frozenset({Role.LAW_ENFORCEMENT, Role.ADMIN, Role.DEVELOPER})
ELEVATED_ROLES = frozenset({Role.ADMIN, Role.DEVELOPER})


class Caller(BaseModel):
    """Resolved identity of whoever is calling the engine."""

    id: str = Field(..., description="User id, used as reviewer / assignee id")
    role: Role = Role.PUBLIC
    is_verified: bool = Field(default=False, description="Account verified by an administrator")
    display_name: Optional[str] = None


@runtime_checkable
class IdentityProvider(Protocol):
    async def resolve(self, token: Optional[str]) -> Optional[Caller]: ...


class StaticIdentityProvider:
    """
    Token -> Caller lookup from a fixed mapping.

    Usage:
        provider = StaticIdentityProvider.from_file("tokens.json")
        caller = await provider.resolve("secret-token")
    """

    def __init__(self, tokens: Optional[Mapping[str, Caller]] = None):
        self._tokens = dict(tokens or {})

    @classmethod
    def from_file(cls, path: str) -> "StaticIdentityProvider":
        """Load ``{token: {id, role, is_verified}}`` from JSON.

        Raises:
            PersistenceError: File missing or malformed.
        """
        try:
            with open(Path(path), "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot load identity tokens from {path}: {e}", stage="load_identities") from e
        return cls({token: Caller.model_validate(entry) for token, entry in data.items()})

    async def resolve(self, token: Optional[str]) -> Optional[Caller]:
        if not token:
            return None
        return self._tokens.get(token)


def require_role(caller: Caller, roles: Iterable[Role], action: str) -> None:
    """Raise ForbiddenError unless the caller holds one of the roles."""
    allowed = frozenset(roles)
    if caller.role not in allowed:
        raise ForbiddenError(
            f"Role '{caller.role.value}' may not {action}",
            required_roles=[r.value for r in allowed],
        )


def require_verified(caller: Caller, action: str) -> None:
    if not caller.is_verified:
        raise ForbiddenError(f"Account must be verified to {action}")


__all__ = [
    "Role",
    "INVESTIGATIVE_ROLES",
    "ELEVATED_ROLES",
    "Caller",
    "IdentityProvider",
    "StaticIdentityProvider",
    "require_role",
    "require_verified",
]
