"""Tests for form cloning with notifications, confirmations and feeds."""

import json

import pytest

from conftest import create_feed, create_form, create_notification, set_grid_meta
from formclone.db.enums import NotificationEvent
from formclone.services import form_clone_service
from formclone.services.form_clone_service import FormCloner
from formclone.services.stores import (
    FormNotFoundError,
    FormPersistenceError,
    SqlFeedStore,
    SqlFormStore,
    SqlNotificationStore,
)


def _notifications(db, form_id):
    return SqlNotificationStore(db).list(NotificationEvent.FORM_SUBMISSION.value, form_id)


def _feed_metas(db, form_id):
    return [json.loads(row["meta"]) for row in SqlFeedStore(db).list_by_form(form_id)]


def _field_ids(form):
    return [field["id"] for field in form["fields"]]


def test_clone_end_to_end_remaps_notification_and_feed(db):
    source_id = create_form(db, "Registration", [{"id": 5, "label": "Name", "type": "text"}])
    source = SqlFormStore(db).get(source_id)
    old_id = source["fields"][0]["id"]
    create_notification(db, source_id, name="Admin", subject=f"Hi {{Name:{old_id}}}")
    create_feed(db, source_id, {"fieldId": str(old_id)})

    new_form_id = form_clone_service.clone_form(db, source_id)

    new_form = SqlFormStore(db).get(new_form_id)
    new_id = str(new_form["fields"][0]["id"])
    assert new_form_id != source_id
    assert new_id == "1"
    assert _notifications(db, new_form_id)[0]["subject"] == f"Hi {{Name:{new_id}}}"
    assert _feed_metas(db, new_form_id) == [{"fieldId": new_id}]


def test_clone_creates_fresh_form_state(db):
    source_id = create_form(
        db,
        "Event Signup",
        [{"label": "Name", "type": "text"}, {"label": "Email", "type": "email"}],
        is_active=False,
        is_trash=True,
        description="Spring event",
        button={"type": "text", "text": "Register"},
    )

    new_form_id = form_clone_service.clone_form(db, source_id)

    source = SqlFormStore(db).get(source_id)
    new_form = SqlFormStore(db).get(new_form_id)
    assert new_form["title"] == "Event Signup (Clone)"
    assert new_form["is_active"] is True
    assert new_form["is_trash"] is False
    assert new_form["description"] == "Spring event"
    assert new_form["button"] == {"type": "text", "text": "Register"}
    assert [f["formId"] for f in new_form["fields"]] == [new_form_id, new_form_id]
    assert [f["label"] for f in new_form["fields"]] == ["Name", "Email"]
    # Source is untouched
    assert source["title"] == "Event Signup"
    assert [f["formId"] for f in source["fields"]] == [source_id, source_id]


def test_clone_twice_produces_two_distinct_forms(db):
    source_id = create_form(db, "Donation", [{"label": "Amount", "type": "number"}])

    first = form_clone_service.clone_form(db, source_id)
    second = form_clone_service.clone_form(db, source_id)

    assert len({source_id, first, second}) == 3


def test_clone_missing_form_raises_not_found(db):
    with pytest.raises(FormNotFoundError):
        form_clone_service.clone_form(db, 999)


def test_clone_normalizes_sub_input_ids_and_maps_them(db):
    fields = [
        {"id": 1, "label": "Email", "type": "email"},
        {
            "id": 3,
            "label": "Name",
            "type": "name",
            "inputs": [{"id": "3.3", "label": "First"}, {"id": "3.6", "label": "Last"}],
        },
    ]
    source_id = create_form(db, "Contact", fields)
    create_notification(
        db,
        source_id,
        message="From {Name (First):3.3} {Name (Last):3.6} <{Email:1}>",
    )

    new_form_id = form_clone_service.clone_form(db, source_id)

    new_form = SqlFormStore(db).get(new_form_id)
    name_id = new_form["fields"][1]["id"]
    email_id = new_form["fields"][0]["id"]
    assert [i["id"] for i in new_form["fields"][1]["inputs"]] == [f"{name_id}.3", f"{name_id}.6"]
    message = _notifications(db, new_form_id)[0]["message"]
    assert message == f"From {{Name (First):{name_id}.3}} {{Name (Last):{name_id}.6}} <{{Email:{email_id}}}>"


def test_clone_rewrites_field_conditional_logic(db):
    fields = [
        {"id": 4, "label": "Attending?", "type": "radio"},
        {
            "id": 9,
            "label": "Guests",
            "type": "number",
            "conditionalLogic": {
                "actionType": "show",
                "logicType": "all",
                "rules": [{"fieldId": "4", "operator": "is", "value": "Yes"}],
            },
        },
    ]
    source_id = create_form(db, "RSVP", fields)

    new_form_id = form_clone_service.clone_form(db, source_id)

    new_form = SqlFormStore(db).get(new_form_id)
    radio_id = str(new_form["fields"][0]["id"])
    rule = new_form["fields"][1]["conditionalLogic"]["rules"][0]
    assert rule == {"fieldId": radio_id, "operator": "is", "value": "Yes"}


def test_clone_copies_notification_logic_routing_and_recipients(db):
    source_id = create_form(
        db,
        "Support",
        [{"id": 3, "label": "Department", "type": "select"}, {"id": 5, "label": "Email", "type": "email"}],
    )
    create_notification(
        db,
        source_id,
        name="Routed",
        toType="routing",
        toField="5",
        replyTo="{Email:5}",
        bcc="audit@example.com",
        routing=[
            {"fieldId": "3", "operator": "is", "value": "Sales", "email": "sales@example.com"},
            {"fieldId": "99", "operator": "is", "value": "{Department:3}", "email": "{Email:5}"},
        ],
        conditionalLogic={
            "actionType": "show",
            "logicType": "any",
            "rules": [{"fieldId": "3", "operator": "isnot", "value": ""}],
        },
    )

    new_form_id = form_clone_service.clone_form(db, source_id)

    new_form = SqlFormStore(db).get(new_form_id)
    dept_id, email_id = (str(i) for i in _field_ids(new_form))
    notification = _notifications(db, new_form_id)[0]
    assert notification["toField"] == email_id
    assert notification["replyTo"] == f"{{Email:{email_id}}}"
    assert notification["bcc"] == "audit@example.com"
    assert notification["routing"][0]["fieldId"] == dept_id
    assert notification["routing"][0]["email"] == "sales@example.com"
    # Unmapped routing field id stays as it was
    assert notification["routing"][1]["fieldId"] == "99"
    assert notification["routing"][1]["value"] == f"{{Department:{dept_id}}}"
    assert notification["routing"][1]["email"] == f"{{Email:{email_id}}}"
    assert notification["conditionalLogic"]["rules"][0]["fieldId"] == dept_id


def test_clone_creates_new_notification_records(db):
    source_id = create_form(db, "Form", [{"label": "Name", "type": "text"}])
    first = create_notification(db, source_id, name="First", sort_order=1)
    second = create_notification(db, source_id, name="Second", sort_order=2)
    create_notification(db, source_id, name="Draft saved", event=NotificationEvent.FORM_SAVED.value)

    new_form_id = form_clone_service.clone_form(db, source_id)

    copies = _notifications(db, new_form_id)
    assert [n["name"] for n in copies] == ["First", "Second"]
    assert {n["id"] for n in copies}.isdisjoint({first, second})
    assert all(n["form_id"] == new_form_id for n in copies)
    assert len(_notifications(db, source_id)) == 2


def test_clone_rewrites_confirmations(db):
    source_id = create_form(
        db,
        "Order",
        [{"id": 4, "label": "Name", "type": "text"}, {"id": 7, "label": "Total", "type": "total"}],
        confirmations={
            "5f1a": {
                "id": "5f1a",
                "name": "Default Confirmation",
                "isDefault": True,
                "type": "message",
                "message": "Thanks {Name:4}, you paid {Total:7:currency}.",
            },
            "77bc": {
                "id": "77bc",
                "name": "Redirect",
                "type": "redirect",
                "url": "https://example.com/thanks",
                "queryString": "name={Name:4}&ref={Ref:9}",
                "conditionalLogic": {"rules": [{"fieldId": "7", "operator": ">", "value": "100"}]},
            },
        },
    )

    new_form_id = form_clone_service.clone_form(db, source_id)

    new_form = SqlFormStore(db).get(new_form_id)
    name_id, total_id = (str(i) for i in _field_ids(new_form))
    confirmations = new_form["confirmations"]
    assert list(confirmations) == ["5f1a", "77bc"]
    assert confirmations["5f1a"]["message"] == f"Thanks {{Name:{name_id}}}, you paid {{Total:{total_id}:currency}}."
    assert confirmations["77bc"]["queryString"] == f"name={{Name:{name_id}}}&ref={{Ref:9}}"
    assert confirmations["77bc"]["url"] == "https://example.com/thanks"
    assert confirmations["77bc"]["conditionalLogic"]["rules"][0]["fieldId"] == total_id
    # Source confirmations keep the old ids
    assert SqlFormStore(db).get(source_id)["confirmations"]["5f1a"]["message"].startswith("Thanks {Name:4}")


def test_clone_copies_every_feed_with_remapped_meta(db):
    fields = [
        {"id": 1, "label": "Email", "type": "email"},
        {
            "id": 4,
            "label": "Address",
            "type": "address",
            "inputs": [{"id": "4.1", "label": "Street"}, {"id": "4.5", "label": "ZIP"}],
        },
        {"id": 6, "label": "Total", "type": "total"},
    ]
    source_id = create_form(db, "Checkout", fields)
    create_feed(
        db,
        source_id,
        {
            "feedName": "Stripe Feed",
            "paymentAmount": "6",
            "billingInformation_email": "1",
            "billingInformation_address": "4.1",
            "billingInformation_zip": "4.5",
            "feed_condition_conditional_logic": True,
            "feed_condition_conditional_logic_object": {
                "conditionalLogic": {"rules": [{"fieldId": "6", "operator": ">", "value": "0"}]}
            },
        },
        addon_slug="gravityformsstripe",
    )
    create_feed(db, source_id, {"feedName": "NMI", "paymentAmount": "form_total"}, addon_slug="nmi")

    new_form_id = form_clone_service.clone_form(db, source_id)

    new_form = SqlFormStore(db).get(new_form_id)
    email_id, address_id, total_id = (str(i) for i in _field_ids(new_form))
    rows = SqlFeedStore(db).list_by_form(new_form_id)
    assert [row["addon_slug"] for row in rows] == ["gravityformsstripe", "nmi"]
    stripe, nmi = (json.loads(row["meta"]) for row in rows)
    assert stripe["paymentAmount"] == total_id
    assert stripe["billingInformation_email"] == email_id
    assert stripe["billingInformation_address"] == f"{address_id}.1"
    assert stripe["billingInformation_zip"] == f"{address_id}.5"
    assert stripe["feed_condition_conditional_logic"] is True
    rules = stripe["feed_condition_conditional_logic_object"]["conditionalLogic"]["rules"]
    assert rules[0]["fieldId"] == total_id
    assert nmi == {"feedName": "NMI", "paymentAmount": "form_total"}
    # Source feeds remain
    assert len(SqlFeedStore(db).list_by_form(source_id)) == 2


def test_clone_pairs_feed_sub_inputs_by_position(db):
    fields = [
        {
            "id": 5,
            "label": "Agree",
            "type": "checkbox",
            "inputs": [{"id": "5.1", "label": "Yes"}, {"id": "5.2", "label": "Yes"}],
        }
    ]
    source_id = create_form(db, "Consent", fields)
    create_feed(db, source_id, {"first": "5.1", "second": "5.2"})
    create_notification(db, source_id, message="{Agree (Yes):5.1}")

    new_form_id = form_clone_service.clone_form(db, source_id)

    new_id = SqlFormStore(db).get(new_form_id)["fields"][0]["id"]
    assert _feed_metas(db, new_form_id) == [{"first": f"{new_id}.1", "second": f"{new_id}.2"}]
    # Notifications keep label matching, where the later input wins
    assert _notifications(db, new_form_id)[0]["message"] == f"{{Agree (Yes):{new_id}.2}}"


def test_clone_copies_feed_meta_that_is_not_json(db):
    source_id = create_form(db, "Legacy", [{"label": "Name", "type": "text"}])
    create_feed(db, source_id, "not-json{")

    new_form_id = form_clone_service.clone_form(db, source_id)

    assert SqlFeedStore(db).list_by_form(new_form_id)[0]["meta"] == "not-json{"


def test_clone_copies_entries_grid_meta_verbatim(db):
    source_id = create_form(db, "Grid", [{"label": "Name", "type": "text"}])
    set_grid_meta(db, source_id, '{"0":"1","1":"date_created"}')

    new_form_id = form_clone_service.clone_form(db, source_id)

    from formclone.services.stores import SqlFormMetaStore

    assert SqlFormMetaStore(db).get_entries_grid_meta(new_form_id) == '{"0":"1","1":"date_created"}'


# =============================================================================
# Failure propagation (in-memory stores)
# =============================================================================

class MemoryFormStore:
    def __init__(self, forms, fail_create=False):
        self.forms = forms
        self.fail_create = fail_create
        self.next_id = max(forms, default=0) + 1

    def get(self, form_id):
        form = self.forms.get(form_id)
        return json.loads(json.dumps(form)) if form else None

    def create(self, form):
        if self.fail_create:
            raise FormPersistenceError("Could not create form.")
        form_id = self.next_id
        self.next_id += 1
        fields = []
        for i, field in enumerate(form["fields"]):
            fields.append({**field, "id": form_id * 100 + i + 1, "formId": form_id})
        self.forms[form_id] = {**form, "id": form_id, "fields": fields}
        return form_id

    def update(self, form):
        if form["id"] not in self.forms:
            raise FormNotFoundError("missing")
        self.forms[form["id"]] = form


class MemoryNotificationStore:
    def __init__(self, notifications=None):
        self.notifications = notifications or []
        self.saved = []

    def list(self, event, form_id):
        return [n for n in self.notifications if n["form_id"] == form_id]

    def upsert(self, form_id, notification):
        self.saved.append((form_id, notification))
        return f"n{len(self.saved)}"


class MemoryFeedStore:
    def __init__(self, feeds=None, fail_insert=False):
        self.feeds = feeds or []
        self.inserted = []
        self.fail_insert = fail_insert

    def list_by_form(self, form_id):
        return [f for f in self.feeds if f["form_id"] == form_id]

    def insert(self, row):
        if self.fail_insert:
            raise FormPersistenceError("Could not save feed.")
        self.inserted.append(row)
        return len(self.inserted)


class MemoryFormMetaStore:
    def __init__(self):
        self.grid = {}

    def get_entries_grid_meta(self, form_id):
        return self.grid.get(form_id)

    def set_entries_grid_meta(self, form_id, value):
        self.grid[form_id] = value


def _memory_source():
    return {
        1: {
            "id": 1,
            "title": "Source",
            "is_active": True,
            "is_trash": False,
            "fields": [{"id": 7, "formId": 1, "label": "Name", "type": "text"}],
            "confirmations": {},
        }
    }


def test_cloner_propagates_create_failure_without_copying_dependents():
    notifications = MemoryNotificationStore([{"form_id": 1, "subject": "{Name:7}"}])
    feeds = MemoryFeedStore([{"id": 1, "form_id": 1, "addon_slug": "stripe", "meta": "{}"}])
    cloner = FormCloner(
        MemoryFormStore(_memory_source(), fail_create=True),
        notifications,
        feeds,
        MemoryFormMetaStore(),
    )

    with pytest.raises(FormPersistenceError):
        cloner.clone_form(1)

    assert notifications.saved == []
    assert feeds.inserted == []


def test_cloner_leaves_earlier_steps_committed_when_feed_copy_fails():
    forms = MemoryFormStore(_memory_source())
    notifications = MemoryNotificationStore([{"form_id": 1, "subject": "{Name:7}"}])
    feeds = MemoryFeedStore(
        [{"id": 1, "form_id": 1, "addon_slug": "stripe", "meta": '{"fieldId": "7"}'}],
        fail_insert=True,
    )
    cloner = FormCloner(forms, notifications, feeds, MemoryFormMetaStore())

    with pytest.raises(FormPersistenceError):
        cloner.clone_form(1)

    # New form and notification remain
    assert 2 in forms.forms
    assert notifications.saved == [(2, {"form_id": 2, "subject": "{Name:201}"})]


def test_cloner_uses_configured_title_suffix():
    forms = MemoryFormStore(_memory_source())
    cloner = FormCloner(
        forms,
        MemoryNotificationStore(),
        MemoryFeedStore(),
        MemoryFormMetaStore(),
        title_suffix=" - copy",
    )

    new_form_id = cloner.clone_form(1)

    assert forms.forms[new_form_id]["title"] == "Source - copy"
