"""
Persistence stores for forms and their dependents.

The cloner only talks to these protocols, so it can run against the
SQLAlchemy-backed implementations below or against in-memory fakes.
Every write commits immediately.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from formclone.db.enums import NotificationEvent
from formclone.db.models import AddonFeed, Form, FormMeta, FormNotification

logger = logging.getLogger(__name__)


class FormServiceError(Exception):
    """Base exception for form service errors."""

    pass


class FormNotFoundError(FormServiceError):
    """Form not found."""

    pass


class FormPersistenceError(FormServiceError):
    """A create/update/insert was rejected by the database."""

    pass


# =============================================================================
# Protocols
# =============================================================================


class FormStore(Protocol):
    def get(self, form_id: int) -> dict[str, Any] | None: ...

    def create(self, form: dict[str, Any]) -> int: ...

    def update(self, form: dict[str, Any]) -> None: ...


class NotificationStore(Protocol):
    def list(self, event: str, form_id: int) -> list[dict[str, Any]]: ...

    def upsert(self, form_id: int, notification: dict[str, Any]) -> str: ...


class FeedStore(Protocol):
    def list_by_form(self, form_id: int) -> list[dict[str, Any]]: ...

    def insert(self, row: dict[str, Any]) -> int: ...


class FormMetaStore(Protocol):
    def get_entries_grid_meta(self, form_id: int) -> str | None: ...

    def set_entries_grid_meta(self, form_id: int, value: str | None) -> None: ...


# =============================================================================
# SQLAlchemy implementations
# =============================================================================


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to persist %s: %s", what, exc)
        raise FormPersistenceError(f"Could not save {what}.") from exc


def form_to_dict(form: Form) -> dict[str, Any]:
    """Serialize a Form row into the dict shape the cloner works on."""
    data = copy.deepcopy(form.settings_json) if form.settings_json else {}
    data.update(
        {
            "id": form.id,
            "title": form.title,
            "description": form.description,
            "is_active": form.is_active,
            "is_trash": form.is_trash,
            "fields": copy.deepcopy(form.fields or []),
            "confirmations": copy.deepcopy(form.confirmations or {}),
            "nextFieldId": form.next_field_id,
            "date_created": form.date_created,
        }
    )
    return data


# Keys held in dedicated columns; everything else rides in settings_json
_FORM_COLUMN_KEYS = {
    "id",
    "title",
    "description",
    "is_active",
    "is_trash",
    "fields",
    "confirmations",
    "nextFieldId",
    "date_created",
}


def _apply_form_dict(form: Form, data: dict[str, Any]) -> None:
    form.title = data.get("title") or ""
    form.description = data.get("description")
    form.is_active = bool(data.get("is_active", True))
    form.is_trash = bool(data.get("is_trash", False))
    form.fields = copy.deepcopy(data.get("fields") or [])
    form.confirmations = copy.deepcopy(data.get("confirmations") or {})
    form.next_field_id = data.get("nextFieldId")
    extra = {k: v for k, v in data.items() if k not in _FORM_COLUMN_KEYS}
    form.settings_json = copy.deepcopy(extra) or None


def _assign_field_ids(form_id: int, fields: list[dict[str, Any]], next_id: int | None) -> tuple[list[dict[str, Any]], int]:
    """
    Give every unassigned field the next free ID, in order.

    Sub-input IDs are not touched.
    """
    existing = [int(f["id"]) for f in fields if f.get("id") is not None]
    if next_id is None:
        next_id = max(existing, default=0) + 1

    assigned = []
    for field in fields:
        field = copy.deepcopy(field)
        if field.get("id") is None:
            field["id"] = next_id
            next_id += 1
        field["formId"] = form_id
        assigned.append(field)
    return assigned, next_id


class SqlFormStore:
    """Form store backed by the ``forms`` table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, form_id: int) -> dict[str, Any] | None:
        form = self.db.get(Form, form_id)
        if form is None:
            return None
        return form_to_dict(form)

    def create(self, form: dict[str, Any]) -> int:
        row = Form()
        _apply_form_dict(row, form)
        row.fields = []
        try:
            self.db.add(row)
            self.db.flush()
            fields, next_id = _assign_field_ids(row.id, form.get("fields") or [], form.get("nextFieldId"))
            row.fields = fields
            row.next_field_id = next_id
            self.db.add(FormMeta(form_id=row.id))
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise FormPersistenceError("Could not create form.") from exc
        _commit(self.db, "form")
        self.db.refresh(row)
        return row.id

    def update(self, form: dict[str, Any]) -> None:
        form_id = form.get("id")
        row = self.db.get(Form, form_id) if form_id is not None else None
        if row is None:
            raise FormNotFoundError(f"Form {form_id} not found.")
        _apply_form_dict(row, form)
        if row.next_field_id is None:
            _, row.next_field_id = _assign_field_ids(row.id, row.fields, None)
        _commit(self.db, "form")


def notification_to_dict(notification: FormNotification) -> dict[str, Any]:
    data = copy.deepcopy(notification.payload or {})
    data.update(
        {
            "id": notification.id,
            "form_id": notification.form_id,
            "event": notification.event,
            "isActive": notification.is_active,
        }
    )
    return data


_NOTIFICATION_COLUMN_KEYS = {"id", "form_id", "event", "isActive"}


class SqlNotificationStore:
    """Notification store backed by the ``form_notifications`` table."""

    def __init__(self, db: Session):
        self.db = db

    def list(self, event: str, form_id: int) -> list[dict[str, Any]]:
        rows = self.db.scalars(
            select(FormNotification)
            .where(FormNotification.form_id == form_id, FormNotification.event == event)
            .order_by(FormNotification.sort_order, FormNotification.created_at)
        ).all()
        return [notification_to_dict(row) for row in rows]

    def upsert(self, form_id: int, notification: dict[str, Any]) -> str:
        notification_id = notification.get("id")
        row = None
        if notification_id:
            row = self.db.scalars(
                select(FormNotification).where(
                    FormNotification.id == notification_id,
                    FormNotification.form_id == form_id,
                )
            ).first()
        if row is None:
            last = self.db.scalar(
                select(func.max(FormNotification.sort_order)).where(
                    FormNotification.form_id == form_id
                )
            )
            row = FormNotification(
                id=uuid.uuid4().hex,
                form_id=form_id,
                sort_order=(last or 0) + 1,
            )
            self.db.add(row)

        row.event = notification.get("event") or NotificationEvent.FORM_SUBMISSION.value
        row.is_active = bool(notification.get("isActive", True))
        row.payload = {
            k: copy.deepcopy(v)
            for k, v in notification.items()
            if k not in _NOTIFICATION_COLUMN_KEYS
        }
        _commit(self.db, "notification")
        return row.id


def feed_to_dict(feed: AddonFeed) -> dict[str, Any]:
    return {
        "id": feed.id,
        "form_id": feed.form_id,
        "addon_slug": feed.addon_slug,
        "is_active": feed.is_active,
        "feed_order": feed.feed_order,
        "meta": feed.meta,
    }


class SqlFeedStore:
    """Raw add-on feed rows; ``meta`` stays a JSON-encoded string."""

    def __init__(self, db: Session):
        self.db = db

    def list_by_form(self, form_id: int) -> list[dict[str, Any]]:
        rows = self.db.scalars(
            select(AddonFeed)
            .where(AddonFeed.form_id == form_id)
            .order_by(AddonFeed.feed_order, AddonFeed.id)
        ).all()
        return [feed_to_dict(row) for row in rows]

    def insert(self, row: dict[str, Any]) -> int:
        feed = AddonFeed(
            form_id=row["form_id"],
            addon_slug=row["addon_slug"],
            is_active=bool(row.get("is_active", True)),
            feed_order=row.get("feed_order") or 0,
            meta=row.get("meta"),
        )
        self.db.add(feed)
        _commit(self.db, "feed")
        return feed.id


class SqlFormMetaStore:
    """Entries grid metadata stored in ``form_meta``."""

    def __init__(self, db: Session):
        self.db = db

    def get_entries_grid_meta(self, form_id: int) -> str | None:
        meta = self.db.get(FormMeta, form_id)
        return meta.entries_grid_meta if meta else None

    def set_entries_grid_meta(self, form_id: int, value: str | None) -> None:
        meta = self.db.get(FormMeta, form_id)
        if meta is None:
            meta = FormMeta(form_id=form_id)
            self.db.add(meta)
        meta.entries_grid_meta = value
        _commit(self.db, "form meta")
