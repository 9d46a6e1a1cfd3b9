"""Access token decoding.

Tokens are issued elsewhere (the site's auth service); the discussion engine
only needs to recover who the caller is. Claims used: ``sub`` (user id),
``role`` and optionally ``name``.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from discussion_engine.config.settings import get_settings

from .identity import Caller


def create_access_token(
    user_id: str,
    role: str = "user",
    name: str | None = None,
    expires_minutes: int = 15,
) -> str:
    """Create a signed access token.

    Only used by tests and local tooling; production tokens come from the
    site's auth service with the same claims and secret.
    """
    settings = get_settings()
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    if name:
        payload["name"] = name
    return jwt.encode(
        payload, settings.auth_secret_key, algorithm=settings.auth_algorithm
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        JWTError: If token is invalid, expired, or not an access token
    """
    settings = get_settings()
    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )
    if payload.get("type", "access") != "access":
        msg = "Invalid token type"
        raise JWTError(msg)
    if not payload.get("sub"):
        msg = "Token has no subject"
        raise JWTError(msg)
    return payload


def caller_from_token(token: str) -> Caller:
    """Build a Caller from a valid access token."""
    payload = decode_access_token(token)
    return Caller.of(payload["sub"], payload.get("role"), payload.get("name"))
