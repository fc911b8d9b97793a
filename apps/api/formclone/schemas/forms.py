"""Schemas for forms and their admin actions."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FormFieldInput(BaseModel):
    """Sub-input of a compound field (name parts, address lines, ...)."""

    model_config = ConfigDict(extra="allow")

    id: str | int | float | None = None
    label: str | None = None


class FormFieldRead(BaseModel):
    """A field as stored; unknown configuration keys pass through."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int | None = None
    form_id: int | None = Field(default=None, alias="formId")
    label: str | None = None
    type: str | None = None
    inputs: list[FormFieldInput] | None = None
    conditional_logic: dict[str, Any] | None = Field(default=None, alias="conditionalLogic")


class FormRead(BaseModel):
    id: int
    title: str
    description: str | None = None
    is_active: bool
    is_trash: bool
    fields: list[FormFieldRead]
    confirmations: dict[str, Any]
    next_field_id: int | None = None
    date_created: datetime | None = None
    cloned: bool = False


class FormActionLink(BaseModel):
    url: str
    label: str
    aria_label: str
    form_name: str
    form_id: int
    confirm_message: str


class FormActionsRead(BaseModel):
    form_id: int
    actions: dict[str, FormActionLink]


class FormSummary(BaseModel):
    id: int
    title: str
    is_active: bool
    date_created: datetime | None = None
