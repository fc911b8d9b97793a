"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, TIMESTAMP, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from formclone.db.base import Base
from formclone.db.enums import Role


class User(Base):
    """An administrator account allowed to sign in to the form admin."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), default=Role.EDITOR.value, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    # Bumped to revoke every outstanding session token
    token_version: Mapped[int] = mapped_column(default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class ConsumedActionToken(Base):
    """
    Record of an admin action token that has already been used.

    Action tokens are single-use: the token's ``jti`` is inserted here
    when the action runs, and a second insert of the same ``jti`` fails.
    """

    __tablename__ = "consumed_action_tokens"
    __table_args__ = (Index("idx_consumed_action_tokens_user", "user_id"),)

    jti: Mapped[str] = mapped_column(String(64), primary_key=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    consumed_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
