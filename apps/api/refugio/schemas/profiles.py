from __future__ import annotations

from enum import Enum

from pydantic import Field

from refugio.schemas.base import Record


class UserRole(str, Enum):
    ADMIN = "admin"
    PASTOR = "pastor"
    EDITOR = "editor"
    LEADER = "leader"
    MEMBER = "member"
    USER = "user"


STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.PASTOR, UserRole.EDITOR})
CONTENT_ROLES = STAFF_ROLES | {UserRole.LEADER}


class Profile(Record):
    email: str
    display_name: str | None = None
    role: UserRole = UserRole.USER
    permissions: list[str] = Field(default_factory=list)
    is_active: bool = True
