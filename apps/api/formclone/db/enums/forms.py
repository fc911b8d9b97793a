"""Form-related enums."""

from enum import Enum


class NotificationEvent(str, Enum):
    """Event that triggers a form notification."""

    FORM_SUBMISSION = "form_submission"
    FORM_SAVED = "form_saved"
    PAYMENT_COMPLETED = "complete_payment"
