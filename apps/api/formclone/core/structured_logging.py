"""Structured logging helpers."""

import logging
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(level.upper())


def build_log_context(
    *,
    user_id: str | None = None,
    form_id: int | None = None,
    new_form_id: int | None = None,
    request_id: str | None = None,
    route: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict suitable for ``extra=``."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if form_id is not None:
        context["form_id"] = form_id
    if new_form_id is not None:
        context["new_form_id"] = new_form_id
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    return context
