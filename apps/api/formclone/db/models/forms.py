"""SQLAlchemy ORM models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import ForeignKey, Index, Integer, String, TIMESTAMP, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from formclone.db.base import Base
from formclone.db.enums import NotificationEvent
from formclone.db.types import JSONType


class Form(Base):
    """
    Form definition.

    Fields and confirmations are stored on the form record itself;
    notifications and add-on feeds are separate rows owned by form id.
    """

    __tablename__ = "forms"
    __table_args__ = (Index("idx_forms_active", "is_active", "is_trash"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    is_trash: Mapped[bool] = mapped_column(default=False, nullable=False)

    # Ordered field dicts; each carries id, formId, label, type, inputs, ...
    fields: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list, nullable=False)
    # Confirmation id -> confirmation dict
    confirmations: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    # Extra form-level settings passed through untouched (button, labelPlacement, ...)
    settings_json: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    next_field_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    date_created: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class FormMeta(Base):
    """Per-form display metadata (entries grid column layout)."""

    __tablename__ = "form_meta"

    form_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("forms.id", ondelete="CASCADE"), primary_key=True
    )
    entries_grid_meta: Mapped[str | None] = mapped_column(Text, nullable=True)


class FormNotification(Base):
    """Notification attached to a form, keyed by a string id."""

    __tablename__ = "form_notifications"
    __table_args__ = (Index("idx_form_notifications_form_event", "form_id", "event"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    form_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False
    )
    event: Mapped[str] = mapped_column(
        String(50), default=NotificationEvent.FORM_SUBMISSION.value, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Subject, message, recipients, routing, conditionalLogic, ...
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class AddonFeed(Base):
    """Payment/processing add-on feed; ``meta`` is a JSON-encoded blob."""

    __tablename__ = "addon_feeds"
    __table_args__ = (Index("idx_addon_feeds_form", "form_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    form_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False
    )
    addon_slug: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    feed_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    meta: Mapped[str | None] = mapped_column(Text, nullable=True)
