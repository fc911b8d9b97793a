"""Clone a form with its notifications, confirmations and add-on feeds."""

from __future__ import annotations

import copy
import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from formclone.core.config import settings
from formclone.core.structured_logging import build_log_context
from formclone.db.enums import NotificationEvent
from formclone.services.field_id_remap import (
    FieldIdMap,
    build_field_map,
    normalize_input_ids,
    remap_all_field_ids,
    remap_merge_tags,
    update_fields_conditional_logic,
)
from formclone.services.stores import (
    FeedStore,
    FormMetaStore,
    FormNotFoundError,
    FormPersistenceError,
    FormServiceError,
    FormStore,
    NotificationStore,
    SqlFeedStore,
    SqlFormMetaStore,
    SqlFormStore,
    SqlNotificationStore,
)

logger = logging.getLogger(__name__)

__all__ = [
    "FormCloner",
    "FormNotFoundError",
    "FormPersistenceError",
    "FormServiceError",
    "clone_form",
]

# Notification keys holding free text that may contain merge tags
NOTIFICATION_TEXT_KEYS = (
    "subject",
    "message",
    "toField",
    "to",
    "from",
    "fromName",
    "replyTo",
    "bcc",
    "cc",
)

# Routing rule keys holding free text
ROUTING_TEXT_KEYS = ("value", "email")

CONFIRMATION_TEXT_KEYS = ("message", "url", "subject", "queryString")

CONFIRMATION_LOGIC_KEYS = ("confirmation_conditional_logic_object", "conditionalLogic")


class FormCloner:
    """
    Duplicate a form and re-point every field reference at the copy.

    Steps run in order and each write is committed by its store; a failure
    stops the clone but does not undo earlier writes.
    """

    def __init__(
        self,
        forms: FormStore,
        notifications: NotificationStore,
        feeds: FeedStore,
        form_meta: FormMetaStore,
        title_suffix: str = " (Clone)",
    ):
        self.forms = forms
        self.notifications = notifications
        self.feeds = feeds
        self.form_meta = form_meta
        self.title_suffix = title_suffix

    def clone_form(self, source_form_id: int) -> int:
        """Clone ``source_form_id`` and return the new form's id."""
        source = self.forms.get(source_form_id)
        if not source:
            raise FormNotFoundError("Original form not found.")

        log_ctx = build_log_context(form_id=source_form_id)
        logger.info("Cloning form %s", source_form_id, extra=log_ctx)

        new_form_id = self.forms.create(self._prepare_copy(source))

        new_form = self.forms.get(new_form_id)
        if not new_form:
            raise FormNotFoundError("Cloned form not found after creation.")
        new_form["fields"] = normalize_input_ids(new_form["fields"])

        field_map = build_field_map(source["fields"], new_form["fields"])
        logger.debug("Field map for form %s: %s", source_form_id, field_map, extra=log_ctx)

        new_form["fields"] = update_fields_conditional_logic(new_form["fields"], field_map)
        self.forms.update(new_form)

        self.copy_entries_grid_meta(source_form_id, new_form_id)
        notification_count = self.copy_notifications(source_form_id, new_form_id, field_map)
        confirmation_count = self.copy_confirmations(source, new_form_id, field_map)
        # Feeds pair sub-inputs index for index
        feed_field_map = build_field_map(source["fields"], new_form["fields"], inputs_by="position")
        feed_count = self.copy_payment_feeds(source_form_id, new_form_id, feed_field_map)

        logger.info(
            "Cloned form %s into %s (%d notifications, %d confirmations, %d feeds)",
            source_form_id,
            new_form_id,
            notification_count,
            confirmation_count,
            feed_count,
            extra=build_log_context(form_id=source_form_id, new_form_id=new_form_id),
        )
        return new_form_id

    def _prepare_copy(self, source: dict[str, Any]) -> dict[str, Any]:
        """Strip identity from the source and reset its fields for re-creation."""
        form = copy.deepcopy(source)
        form.pop("id", None)
        form.pop("nextFieldId", None)
        form.pop("date_created", None)
        form["title"] = f"{form.get('title') or ''}{self.title_suffix}"
        form["is_active"] = True
        form["is_trash"] = False

        fields = []
        for field in form.get("fields") or []:
            if not isinstance(field, dict):
                continue
            field["id"] = None
            field["formId"] = None
            fields.append(field)
        form["fields"] = fields
        return form

    def copy_entries_grid_meta(self, source_form_id: int, new_form_id: int) -> None:
        grid_meta = self.form_meta.get_entries_grid_meta(source_form_id)
        if grid_meta is not None:
            self.form_meta.set_entries_grid_meta(new_form_id, grid_meta)

    def copy_notifications(
        self, source_form_id: int, new_form_id: int, field_map: FieldIdMap
    ) -> int:
        """
        Copy every notification onto the new form.

        Conditional logic is remapped as a whole tree, routing rules by
        their ``fieldId`` plus merge tags in their text, then merge tags in
        the notification's own text fields. Each copy is saved as a new
        record.
        """
        notifications = self.notifications.list(
            NotificationEvent.FORM_SUBMISSION.value, source_form_id
        )
        for notification in notifications:
            notification = copy.deepcopy(notification)
            notification.pop("id", None)

            if notification.get("conditionalLogic"):
                notification["conditionalLogic"] = remap_all_field_ids(
                    notification["conditionalLogic"], field_map
                )

            routing = notification.get("routing")
            if routing and isinstance(routing, list):
                notification["routing"] = [
                    self._remap_route(route, field_map) for route in routing
                ]

            to_field = notification.get("toField")
            if to_field is not None and str(to_field) in field_map:
                notification["toField"] = field_map[str(to_field)]

            for key in NOTIFICATION_TEXT_KEYS:
                if notification.get(key):
                    notification[key] = remap_merge_tags(notification[key], field_map)

            notification["form_id"] = new_form_id
            self.notifications.upsert(new_form_id, notification)
        return len(notifications)

    @staticmethod
    def _remap_route(route: Any, field_map: FieldIdMap) -> Any:
        if not isinstance(route, dict):
            return route
        route = dict(route)
        field_id = route.get("fieldId")
        if field_id is not None and str(field_id) in field_map:
            route["fieldId"] = field_map[str(field_id)]
        for key in ROUTING_TEXT_KEYS:
            if key in route:
                route[key] = remap_merge_tags(route[key], field_map)
        return route

    def copy_confirmations(
        self, source: dict[str, Any], new_form_id: int, field_map: FieldIdMap
    ) -> int:
        """Rewrite the source's confirmation set and store it on the new form."""
        confirmations = source.get("confirmations")
        if not confirmations:
            return 0

        remapped = {}
        for confirmation_id, confirmation in confirmations.items():
            confirmation = copy.deepcopy(confirmation)
            for logic_key in CONFIRMATION_LOGIC_KEYS:
                if confirmation.get(logic_key) is not None:
                    confirmation[logic_key] = remap_all_field_ids(
                        confirmation[logic_key], field_map
                    )
            for key in CONFIRMATION_TEXT_KEYS:
                if key in confirmation:
                    confirmation[key] = remap_merge_tags(confirmation[key], field_map)
            remapped[confirmation_id] = confirmation

        new_form = self.forms.get(new_form_id)
        if not new_form:
            raise FormNotFoundError("Cloned form not found.")
        new_form["confirmations"] = remapped
        self.forms.update(new_form)
        return len(remapped)

    def copy_payment_feeds(
        self, source_form_id: int, new_form_id: int, field_map: FieldIdMap
    ) -> int:
        """Insert a copy of every add-on feed with its meta remapped."""
        feeds = self.feeds.list_by_form(source_form_id)
        for feed in feeds:
            row = dict(feed)
            row.pop("id", None)
            row["form_id"] = new_form_id
            row["meta"] = self._remap_feed_meta(row.get("meta"), field_map, feed.get("id"))
            self.feeds.insert(row)
        return len(feeds)

    @staticmethod
    def _remap_feed_meta(meta: str | None, field_map: FieldIdMap, feed_id: Any) -> str | None:
        if not meta:
            return meta
        try:
            decoded = json.loads(meta)
        except ValueError:
            logger.warning("Feed %s meta is not valid JSON; copied unchanged", feed_id)
            return meta
        return json.dumps(remap_all_field_ids(decoded, field_map))


def build_cloner(db: Session) -> FormCloner:
    """Wire a FormCloner to the SQLAlchemy stores on ``db``."""
    return FormCloner(
        forms=SqlFormStore(db),
        notifications=SqlNotificationStore(db),
        feeds=SqlFeedStore(db),
        form_meta=SqlFormMetaStore(db),
        title_suffix=settings.CLONE_TITLE_SUFFIX,
    )


def clone_form(db: Session, source_form_id: int) -> int:
    """Clone a form using the database-backed stores."""
    return build_cloner(db).clone_form(source_form_id)
