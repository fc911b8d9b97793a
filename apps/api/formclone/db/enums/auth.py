"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles with increasing privilege levels.

    - EDITOR: Edits form content, cannot run admin actions
    - ADMIN: Form administrator (clone, feeds, notifications)
    - DEVELOPER: Platform admin (integrations, logs)
    """

    EDITOR = "editor"
    ADMIN = "admin"
    DEVELOPER = "developer"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
