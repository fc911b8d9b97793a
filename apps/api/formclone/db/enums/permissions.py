"""Role capability sets."""

from formclone.db.enums.auth import Role

# Roles holding the form-management capability (clone with payments)
ROLES_CAN_CLONE_FORMS = {Role.ADMIN, Role.DEVELOPER}
