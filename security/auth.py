"""
Auth — JWT bearer tokens for instructor access.

Roles:
  • Instructor — can view assignments, students and activity
  • Admin      — everything an instructor can, across all courses

The identity provider's device-flow login is external; locally the
viewer issues its own short-lived tokens from configured accounts.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable

from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import get_settings
from core.exceptions import SecurityError

logger = logging.getLogger(__name__)

security_scheme = HTTPBearer()


class Role(str, Enum):
    """User roles for RBAC."""
    ADMIN = "admin"
    INSTRUCTOR = "instructor"


def _get_accounts() -> dict[str, dict[str, str]]:
    """Return the configured account store."""
    settings = get_settings()
    return {
        settings.INSTRUCTOR_USERNAME: {
            "password": settings.INSTRUCTOR_PASSWORD,
            "role": Role.INSTRUCTOR,
        },
        settings.ADMIN_USERNAME: {
            "password": settings.ADMIN_PASSWORD,
            "role": Role.ADMIN,
        },
    }


# ── Token management ───────────────────────────────────────────────────

def authenticate_instructor(username: str, password: str) -> dict[str, Any]:
    """Validate credentials and return account info.

    Raises:
        SecurityError: If credentials are invalid.
    """
    account = _get_accounts().get(username)
    if not account or account["password"] != password:
        logger.warning("Failed login attempt for '%s'", username)
        raise SecurityError("Invalid credentials")
    logger.info("'%s' authenticated (role: %s)", username, account["role"].value)
    return {"username": username, "role": account["role"]}


def create_token(username: str, role: str) -> str:
    """Create a signed JWT access token."""
    settings = get_settings()
    issued = datetime.now(timezone.utc)
    payload = {
        "sub": username,
        "role": Role(role).value,
        "exp": issued + timedelta(minutes=settings.JWT_EXPIRY_MINUTES),
        "iat": issued,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> dict[str, Any]:
    """Verify and decode an access token.

    Returns:
        Dict with ``username`` and ``role``.

    Raises:
        SecurityError: If the token is invalid, expired, or malformed.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        return {"username": payload["sub"], "role": Role(payload["role"])}
    except (JWTError, KeyError, ValueError) as exc:
        raise SecurityError(f"Invalid token: {exc}") from exc


# ── FastAPI dependencies ────────────────────────────────────────────────

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
) -> dict[str, Any]:
    """Extract and verify the caller from the bearer token."""
    try:
        return verify_token(credentials.credentials)
    except SecurityError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_role(required_role: Role) -> Callable:
    """Dependency factory: ensure the caller holds ``required_role``.

    Admin satisfies every role.
    """
    async def role_checker(
        user: dict[str, Any] = Depends(get_current_user),
    ) -> dict[str, Any]:
        role = user.get("role")
        if role == Role.ADMIN or role == required_role:
            return user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Requires '{required_role.value}' role.",
        )

    return role_checker
