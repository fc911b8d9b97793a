"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from formclone.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    role: str
    token_version: int


class UserSession(BaseModel):
    """
    Session context for authenticated requests.

    Returned by the get_current_session dependency; carries
    everything needed for capability checks.
    """
    user_id: UUID
    role: Role  # Validated enum
    email: str
    display_name: str
