"""Security utilities for JWT session tokens and clone action tokens."""

import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from formclone.core.config import settings


# =============================================================================
# Session Token (JWT in cookie)
# =============================================================================

def create_session_token(
    user_id: UUID,
    role: str,
    token_version: int,
) -> str:
    """
    Create signed session JWT.

    Always signs with current secret (JWT_SECRET).
    Token contains user identity, role, and revocation version.
    """
    payload = {
        "sub": str(user_id),
        "role": role,
        "token_version": token_version,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def _decode_with_rotation(token: str) -> dict:
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    return _decode_with_rotation(token)


# =============================================================================
# Clone Action Token (single-use, scoped to one source form)
# =============================================================================

def clone_action_name(form_id: int | str) -> str:
    """Action string a clone token is bound to, built from the id as requested."""
    return f"clone_form_{form_id}"


def create_action_token(action: str, user_id: UUID) -> str:
    """
    Create a signed token for one admin action.

    The ``jti`` lets the caller record the token as consumed so it
    cannot be replayed.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "action": action,
        "sub": str(user_id),
        "jti": secrets.token_urlsafe(16),
        "iat": now,
        "exp": now + timedelta(seconds=settings.CLONE_TOKEN_EXPIRES_SECONDS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def verify_action_token(token: str, action: str, user_id: UUID) -> dict | None:
    """
    Verify an action token's signature, expiry, action and owner.

    Returns the decoded payload, or None when any check fails.
    Consumption (single-use) is tracked by the caller.
    """
    if not token:
        return None
    try:
        payload = _decode_with_rotation(token)
    except jwt.InvalidTokenError:
        return None

    if not secrets.compare_digest(str(payload.get("action", "")), action):
        return None
    if payload.get("sub") != str(user_id):
        return None
    if not payload.get("jti"):
        return None
    return payload
