"""Admin action links and single-use tokens for "Clone with Payments"."""

import logging
from urllib.parse import urlencode
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from formclone.core.security import (
    clone_action_name,
    create_action_token,
    verify_action_token,
)
from formclone.db.models import ConsumedActionToken
from formclone.schemas.forms import FormActionLink

logger = logging.getLogger(__name__)

CLONE_ACTION_KEY = "clone_with_payments"
CLONE_PATH = "/forms/clone"
CLONE_FORM_PARAM = "clone_form"
TOKEN_PARAM = "_token"

# Shown by the admin UI before the clone runs
CLONE_CONFIRM_MESSAGE = (
    "Clone this form, including payment feeds, notifications and confirmations? "
    "After cloning: change the name of the form; rename the payment feeds "
    "(for example \"Stripe Feed - [Your Event Name]\"); check every confirmation "
    "and notification for event-specific details such as contact name and email, "
    "program name and event name; add program specifics where needed."
)


def build_clone_url(form_id: int, user_id: UUID) -> str:
    """Clone trigger URL carrying a fresh token scoped to ``form_id``."""
    token = create_action_token(clone_action_name(form_id), user_id)
    query = urlencode({CLONE_FORM_PARAM: form_id, TOKEN_PARAM: token})
    return f"{CLONE_PATH}?{query}"


def build_clone_action_link(form: dict, user_id: UUID) -> FormActionLink:
    """Action link for the forms list, with a fresh token and the confirmation checklist."""
    return FormActionLink(
        url=build_clone_url(form["id"], user_id),
        label="Clone with Payments",
        aria_label="Clone this form with payment feeds",
        form_name=form.get("title") or "Untitled",
        form_id=form["id"],
        confirm_message=CLONE_CONFIRM_MESSAGE,
    )


def consume_clone_token(db: Session, token: str, form_id: int | str, user_id: UUID) -> bool:
    """
    Validate a clone token and mark it used.

    ``form_id`` is the identifier exactly as the request sent it, so a
    token issued for ``3`` does not authorize ``-3`` or ``03``.

    Returns False for a token that is invalid, expired, issued to another
    user or form, or already consumed.
    """
    action = clone_action_name(form_id)
    payload = verify_action_token(token, action, user_id)
    if payload is None:
        return False
    if db.get(ConsumedActionToken, payload["jti"]) is not None:
        logger.info("Rejected reused clone token for form %s", form_id)
        return False

    db.add(ConsumedActionToken(jti=payload["jti"], action=action, user_id=user_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Rejected reused clone token for form %s", form_id)
        return False
    return True
