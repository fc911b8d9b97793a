"""Enum definitions for application constants."""

from formclone.db.enums.auth import Role
from formclone.db.enums.forms import NotificationEvent
from formclone.db.enums.permissions import ROLES_CAN_CLONE_FORMS

__all__ = [
    "NotificationEvent",
    "ROLES_CAN_CLONE_FORMS",
    "Role",
]
