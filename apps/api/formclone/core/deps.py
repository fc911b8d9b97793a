"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator

import jwt
from fastapi import Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from formclone.core.security import decode_session_token
from formclone.db.session import SessionLocal
from formclone.schemas.auth import TokenPayload


# Cookie name
COOKIE_NAME = "formclone_session"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Get authenticated user from session cookie.

    Validates:
    - Session cookie exists
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)

    Raises:
        HTTPException 401: Authentication failed
    """
    # Import here to avoid circular imports
    from formclone.db.models import User

    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        claims = TokenPayload.model_validate(decode_session_token(token))
    except (jwt.InvalidTokenError, ValidationError):
        raise HTTPException(status_code=401, detail="Invalid session")

    user = db.query(User).filter(User.id == claims.sub).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    # Token version check (revocation support)
    if user.token_version != claims.token_version:
        raise HTTPException(status_code=401, detail="Session revoked")

    return user


def get_current_session(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Get session context: user_id, role.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: Unknown role
    """
    from formclone.db.enums import Role
    from formclone.schemas.auth import UserSession

    user = get_current_user(request, db)

    # Validate role is a known enum value - return 403 not 500
    if not Role.has_value(user.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{user.role}'. Contact administrator."
        )

    return UserSession(
        user_id=user.id,
        role=Role(user.role),
        email=user.email,
        display_name=user.display_name,
    )


def get_optional_session(
    request: Request,
    db: Session = Depends(get_db)
):
    """Session context, or None when the request is not authenticated."""
    try:
        return get_current_session(request, db)
    except HTTPException:
        return None


# =============================================================================
# Permission Check Helpers (use enum sets from db.enums)
# =============================================================================

def can_clone_forms(session) -> bool:
    """Check if user holds the form-management capability."""
    from formclone.db.enums import ROLES_CAN_CLONE_FORMS
    return session is not None and session.role in ROLES_CAN_CLONE_FORMS
