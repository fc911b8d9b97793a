"""Form read endpoints and the "Clone with Payments" admin action."""

import html
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from formclone.core.config import settings
from formclone.core.deps import (
    can_clone_forms,
    get_current_session,
    get_db,
    get_optional_session,
)
from formclone.core.structured_logging import build_log_context
from formclone.db.models import Form
from formclone.schemas.auth import UserSession
from formclone.schemas.forms import FormActionsRead, FormRead, FormSummary
from formclone.services import clone_action_service, form_clone_service
from formclone.services.stores import SqlFormStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/forms", tags=["forms"])


def _form_read(form: dict, cloned: bool = False) -> FormRead:
    return FormRead(
        id=form["id"],
        title=form["title"],
        description=form.get("description"),
        is_active=form["is_active"],
        is_trash=form["is_trash"],
        fields=form.get("fields") or [],
        confirmations=form.get("confirmations") or {},
        next_field_id=form.get("nextFieldId"),
        date_created=form.get("date_created"),
        cloned=cloned,
    )


def _parse_form_id(raw: str | None) -> int | None:
    """Absolute integer value of the request parameter, or None."""
    if raw is None:
        return None
    try:
        form_id = abs(int(raw.strip()))
    except ValueError:
        return None
    return form_id or None


def _decline() -> RedirectResponse:
    return RedirectResponse(url=settings.FORMS_LIST_PATH, status_code=303)


def _error_page(message: str, status_code: int) -> HTMLResponse:
    body = (
        "<!DOCTYPE html><html><head><title>Error</title></head><body>"
        f"<p>Error duplicating form: {html.escape(message)}</p>"
        "</body></html>"
    )
    return HTMLResponse(content=body, status_code=status_code)


@router.get("", response_model=list[FormSummary])
def list_forms(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Non-trashed forms, newest first."""
    forms = db.scalars(
        select(Form)
        .where(Form.is_trash.is_(False))
        .order_by(Form.id.desc())
    ).all()
    return [
        FormSummary(
            id=form.id,
            title=form.title,
            is_active=form.is_active,
            date_created=form.date_created,
        )
        for form in forms
    ]


@router.get("/clone")
def clone_form_action(
    clone_form: str | None = Query(default=None),
    token: str | None = Query(default=None, alias="_token"),
    session: UserSession | None = Depends(get_optional_session),
    db: Session = Depends(get_db),
):
    """
    Clone a form with its notifications, confirmations and payment feeds.

    Requests without the capability or a valid single-use token for this
    form are declined with a redirect to the form list.
    """
    source_form_id = _parse_form_id(clone_form)
    if source_form_id is None or not can_clone_forms(session):
        return _decline()
    if not clone_action_service.consume_clone_token(
        db, token or "", clone_form.strip(), session.user_id
    ):
        return _decline()

    log_ctx = build_log_context(user_id=str(session.user_id), form_id=source_form_id)
    try:
        new_form_id = form_clone_service.clone_form(db, source_form_id)
    except form_clone_service.FormNotFoundError as e:
        logger.info("Clone requested for missing form %s", source_form_id, extra=log_ctx)
        return _error_page(str(e), status_code=404)
    except form_clone_service.FormServiceError as e:
        logger.error("Clone of form %s failed: %s", source_form_id, e, extra=log_ctx)
        return _error_page(str(e), status_code=500)

    return RedirectResponse(url=f"/forms/{new_form_id}?cloned=1", status_code=303)


@router.get("/{form_id}", response_model=FormRead)
def get_form(
    form_id: int,
    cloned: bool = Query(default=False),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    form = SqlFormStore(db).get(form_id)
    if not form:
        raise HTTPException(status_code=404, detail="Form not found")
    return _form_read(form, cloned=cloned)


@router.get("/{form_id}/actions", response_model=FormActionsRead)
def get_form_actions(
    form_id: int,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Admin action links for a form; clone appears only for capable roles."""
    form = SqlFormStore(db).get(form_id)
    if not form:
        raise HTTPException(status_code=404, detail="Form not found")

    actions = {}
    if can_clone_forms(session):
        actions[clone_action_service.CLONE_ACTION_KEY] = (
            clone_action_service.build_clone_action_link(form, session.user_id)
        )
    return FormActionsRead(form_id=form_id, actions=actions)
