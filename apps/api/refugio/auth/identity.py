from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from refugio.schemas.profiles import Profile, UserRole
from refugio.services.error_codes import ErrorCode
from refugio.services.exceptions import AuthenticationError, AuthorizationError


@dataclass(frozen=True)
class Identity:
    id: str
    email: str | None = None
    display_name: str | None = None
    role: UserRole = UserRole.USER

    @classmethod
    def from_profile(cls, profile: Profile) -> "Identity":
        return cls(
            id=profile.id,
            email=profile.email,
            display_name=profile.display_name,
            role=profile.role,
        )

    @property
    def label(self) -> str:
        if self.display_name:
            return self.display_name
        if self.email:
            return self.email.split("@")[0]
        return "Anónimo"

    def owns(self, user_id: str | None, user_email: str | None) -> bool:
        """True when a stored record belongs to this identity, by id or email."""
        if user_id and user_id == self.id:
            return True
        return bool(user_email and self.email and user_email.lower() == self.email.lower())


# Supplies whoever is signed in right now, or None.
IdentityProvider = Callable[[], "Identity | None"]


def static_identity(identity: Identity | None) -> IdentityProvider:
    return lambda: identity


def has_role(identity: Identity | None, roles: Iterable[UserRole]) -> bool:
    return identity is not None and identity.role in set(roles)


def require_identity(identity: Identity | None, action: str = "continue") -> Identity:
    if identity is None:
        raise AuthenticationError(
            ErrorCode.AUTH_REQUIRED.value, f"sign in to {action}", {"action": action}
        )
    return identity


def require_role(
    identity: Identity | None,
    roles: Iterable[UserRole],
    action: str = "continue",
) -> Identity:
    identity = require_identity(identity, action)
    allowed = set(roles)
    if identity.role not in allowed:
        raise AuthorizationError(
            ErrorCode.FORBIDDEN.value,
            f"role {identity.role.value} cannot {action}",
            {"action": action, "role": identity.role.value},
        )
    return identity
