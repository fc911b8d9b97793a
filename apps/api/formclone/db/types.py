"""Custom SQLAlchemy column types."""

from __future__ import annotations

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on PostgreSQL, generic JSON (text-backed) elsewhere.
JSONType = JSON().with_variant(JSONB(), "postgresql")
