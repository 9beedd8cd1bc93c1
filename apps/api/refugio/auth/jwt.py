from __future__ import annotations

from typing import Any

import jwt
from jwt import PyJWTError

from refugio.auth.identity import Identity
from refugio.core.config import settings
from refugio.schemas.profiles import UserRole


def verify_access_token(token: str) -> dict[str, Any]:
    if not settings.jwt_secret:
        raise ValueError("JWT_SECRET is not configured")
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options={"require": ["sub", "exp"]},
        )
    except PyJWTError as exc:
        raise ValueError("invalid access token") from exc


def identity_from_claims(claims: dict[str, Any]) -> Identity:
    """Map Supabase-style access token claims onto an Identity."""
    user_meta = claims.get("user_metadata") or {}
    app_meta = claims.get("app_metadata") or {}
    raw_role = app_meta.get("role") or user_meta.get("role") or UserRole.USER.value
    try:
        role = UserRole(raw_role)
    except ValueError:
        role = UserRole.USER
    return Identity(
        id=str(claims["sub"]),
        email=claims.get("email"),
        display_name=user_meta.get("full_name") or user_meta.get("name"),
        role=role,
    )
