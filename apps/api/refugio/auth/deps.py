from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request

from refugio.api.deps import Registry
from refugio.api.errors import http_error_from_service
from refugio.auth.identity import Identity
from refugio.auth.jwt import identity_from_claims, verify_access_token
from refugio.core.config import settings
from refugio.schemas.profiles import CONTENT_ROLES
from refugio.services.exceptions import ServiceError

logger = structlog.get_logger(__name__)


def _unauthorized(detail: str = "unauthorized") -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_optional_identity(request: Request, registry: Registry) -> Identity | None:
    auth = request.headers.get("Authorization", "")
    if not auth:
        return None
    if not auth.startswith("Bearer "):
        raise _unauthorized("missing bearer token")

    token = auth.removeprefix("Bearer ").strip()
    profiles = registry.get("profiles")

    try:
        # Local dev auth only
        if settings.auth_mode == "dev" and settings.env == "local":
            prefix = settings.dev_auth_prefix
            if not token.startswith(prefix):
                raise _unauthorized(f"invalid dev token (expected prefix {prefix})")

            email = token.removeprefix(prefix).strip()
            if "@" not in email:
                raise _unauthorized("invalid email in token")

            profile = profiles.find_one("email", email)
            if profile is None:
                profile = profiles.create({"email": email})
                logger.info("dev_profile_created", email=email)
            if not profile.is_active:
                raise _unauthorized("profile is disabled")
            return Identity.from_profile(profile)

        if settings.auth_mode == "jwt":
            try:
                claims = verify_access_token(token)
            except ValueError:
                raise _unauthorized("invalid access token") from None
            identity = identity_from_claims(claims)
            profile = profiles.get(identity.id)
            if profile is None and identity.email:
                profile = profiles.find_one("email", identity.email)
            if profile is None:
                return identity
            if not profile.is_active:
                raise _unauthorized("profile is disabled")
            return Identity(
                id=profile.id,
                email=profile.email or identity.email,
                display_name=profile.display_name or identity.display_name,
                role=profile.role,
            )
    except ServiceError as err:
        raise http_error_from_service(err) from err

    raise _unauthorized("auth not configured")


OptionalIdentity = Annotated[Identity | None, Depends(get_optional_identity)]


def get_current_identity(identity: OptionalIdentity) -> Identity:
    if identity is None:
        raise _unauthorized("missing bearer token")
    return identity


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]


def require_content_role(identity: CurrentIdentity) -> Identity:
    if identity.role not in CONTENT_ROLES:
        raise HTTPException(
            status_code=403,
            detail={"code": "FORBIDDEN", "message": f"role {identity.role.value} cannot manage content"},
        )
    return identity


StaffIdentity = Annotated[Identity, Depends(require_content_role)]
