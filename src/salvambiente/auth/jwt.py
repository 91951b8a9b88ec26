"""
HS256 JWT token management.

Three token types share one signing secret and are told apart by the `type`
claim: `access` (session, 4 hours), `google_pending` (incomplete Google
registration, 10 minutes) and `oauth_state` (CSRF state for the Google
redirect, 10 minutes).
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from salvambiente.config import get_settings

ACCESS = "access"
GOOGLE_PENDING = "google_pending"
OAUTH_STATE = "oauth_state"


def _encode(claims: dict[str, Any], token_type: str, ttl: timedelta) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        **claims,
        "iat": now,
        "exp": now + ttl,
        "type": token_type,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_session_token(
    user_id: int,
    username: str,
    email: str,
    role: str,
    role_id: int | None,
    *,
    ttl: timedelta | None = None,
) -> str:
    """
    Create a session token carrying identity and role claims.

    Args:
        user_id: The user's database ID.
        username: The user's handle.
        email: The user's email address.
        role: Role name ("admin", "moderador" or "usuario").
        role_id: Database ID of the role row.
        ttl: Override for the configured session lifetime.

    Returns:
        Encoded JWT string.
    """
    if ttl is None:
        ttl = timedelta(minutes=get_settings().jwt_session_ttl_minutes)
    claims = {
        "id": user_id,
        "usuario": username,
        "correo": email,
        "rol": role,
        "rol_id": role_id,
    }
    return _encode(claims, ACCESS, ttl)


def create_pending_token(email: str, name: str | None, *, ttl: timedelta | None = None) -> str:
    """Create the role-less token handed to a Google user who still has to pick a handle."""
    if ttl is None:
        ttl = timedelta(minutes=get_settings().jwt_pending_ttl_minutes)
    return _encode({"email": email, "name": name, "verified": False}, GOOGLE_PENDING, ttl)


def create_state_token() -> str:
    """Create a signed, short-lived OAuth state value."""
    ttl = timedelta(minutes=get_settings().oauth_state_ttl_minutes)
    return _encode({"nonce": secrets.token_urlsafe(16)}, OAUTH_STATE, ttl)


def verify_token(token: str, expected_type: str = ACCESS) -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Args:
        token: The encoded JWT string.
        expected_type: Expected value of the `type` claim.

    Returns:
        Decoded payload dictionary.

    Raises:
        jwt.ExpiredSignatureError: If the token is past its expiry.
        jwt.InvalidTokenError: If the token is malformed, forged, or of the wrong type.
    """
    settings = get_settings()
    payload: dict[str, Any] = jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
    )

    if payload.get("type") != expected_type:
        msg = f"Expected token type '{expected_type}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)

    return payload
