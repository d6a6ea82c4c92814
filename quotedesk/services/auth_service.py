"""
Admin access-token helpers.

Tokens are issued by the storefront's identity service; this service only
verifies them. ``create_access_token`` exists for operator tooling and tests.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError

from quotedesk.config import settings
from quotedesk.errors import MissingPrincipal


@dataclass(frozen=True)
class AdminPrincipal:
    """The authenticated admin on whose behalf an operation runs."""

    user_id: str
    role: str
    email: Optional[str] = None


def require_principal(actor: Optional[AdminPrincipal]) -> AdminPrincipal:
    """Services call this before writing audit fields."""
    if actor is None or not actor.user_id:
        raise MissingPrincipal()
    return actor


def create_access_token(
    user_id: str,
    role: str,
    email: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(
            minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
        ),
        "type": "access",
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token. Raises JWTError on failure."""
    return jwt.decode(
        token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
    )


def verify_access_token(token: str) -> dict:
    """Verify an access token and return its claims."""
    payload = decode_token(token)
    if payload.get("type") != "access":
        raise JWTError("Not an access token")
    if not payload.get("sub"):
        raise JWTError("Token has no subject")
    return payload
