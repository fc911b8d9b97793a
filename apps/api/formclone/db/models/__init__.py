"""SQLAlchemy ORM models."""

from formclone.db.models.auth import ConsumedActionToken, User
from formclone.db.models.forms import AddonFeed, Form, FormMeta, FormNotification

__all__ = [
    "AddonFeed",
    "ConsumedActionToken",
    "Form",
    "FormMeta",
    "FormNotification",
    "User",
]
