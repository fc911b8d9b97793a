"""Service layer modules."""

# Import service modules (not individual functions) for cleaner access
from formclone.services import clone_action_service
from formclone.services import field_id_remap
from formclone.services import form_clone_service
from formclone.services import stores

__all__ = [
    "clone_action_service",
    "field_id_remap",
    "form_clone_service",
    "stores",
]
