"""Pydantic schemas for API request/response models."""

from formclone.schemas.auth import TokenPayload, UserSession
from formclone.schemas.forms import (
    FormActionLink,
    FormActionsRead,
    FormFieldInput,
    FormFieldRead,
    FormRead,
    FormSummary,
)

__all__ = [
    # Auth
    "TokenPayload",
    "UserSession",
    # Forms
    "FormActionLink",
    "FormActionsRead",
    "FormFieldInput",
    "FormFieldRead",
    "FormRead",
    "FormSummary",
]
