"""Supabase JWT authentication and role checks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import Depends, HTTPException, Request

from locator_shared.config import settings
from locator_shared.constants import Role
from locator_shared.db import get_supabase_client

logger = structlog.get_logger(__name__)


class PermissionDenied(HTTPException):
    """Authenticated, but the profile role is not allowed here."""

    def __init__(self, required: tuple[str, ...], role: str) -> None:
        super().__init__(
            status_code=403,
            detail=f"This action requires the {' or '.join(required)} role. "
            f"Your current role is '{role}'.",
        )
        self.required = required
        self.role = role


@dataclass
class AuthUser:
    user_id: str
    role: Role = "user"
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _validate_jwt(token: str) -> dict[str, Any] | None:
    """Validate a Supabase JWT and return its claims."""
    from jose import JWTError
    from jose import jwt as jose_jwt

    try:
        return jose_jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience="authenticated",
        )
    except JWTError as exc:
        logger.info("jwt_rejected", error=str(exc))
        return None


async def get_current_user(request: Request) -> AuthUser | None:
    """Extract and validate the user from a Supabase access token.

    Returns None if no credentials are provided (public access).
    Raises 401 if the token is invalid.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None

    claims = _validate_jwt(auth_header[7:])
    if claims is None or not claims.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id = claims["sub"]
    supabase = get_supabase_client(service_role=True)
    result = (
        supabase.table("profiles")
        .select("id, first_name, last_name, role")
        .eq("id", user_id)
        .limit(1)
        .execute()
    )
    profile = result.data[0] if result.data else {}
    return AuthUser(
        user_id=user_id,
        role=profile.get("role") or "user",
        email=claims.get("email"),
        first_name=profile.get("first_name"),
        last_name=profile.get("last_name"),
    )


def require_role(*roles: str):
    """Dependency factory: 401 when anonymous, 403 when the role is not listed."""

    async def _dependency(
        user: AuthUser | None = Depends(get_current_user),
    ) -> AuthUser:
        if user is None:
            raise HTTPException(
                status_code=401,
                detail="Authentication required",
            )
        if roles and user.role not in roles:
            logger.warning("permission_denied", user_id=user.user_id, role=user.role, required=roles)
            raise PermissionDenied(roles, user.role)
        return user

    return _dependency


require_admin = require_role("admin")
