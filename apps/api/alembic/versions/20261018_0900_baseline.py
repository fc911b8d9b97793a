"""Baseline: users, forms, form meta, notifications, add-on feeds, action tokens.

Revision ID: 20261018_0900
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261018_0900"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _json():
    return sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("token_version", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    op.create_table(
        "forms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_trash", sa.Boolean(), nullable=False),
        sa.Column("fields", _json(), nullable=False),
        sa.Column("confirmations", _json(), nullable=False),
        sa.Column("settings_json", _json(), nullable=True),
        sa.Column("next_field_id", sa.Integer(), nullable=True),
        sa.Column(
            "date_created",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("idx_forms_active", "forms", ["is_active", "is_trash"])

    op.create_table(
        "form_meta",
        sa.Column(
            "form_id",
            sa.Integer(),
            sa.ForeignKey("forms.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("entries_grid_meta", sa.Text(), nullable=True),
    )

    op.create_table(
        "form_notifications",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "form_id",
            sa.Integer(),
            sa.ForeignKey("forms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("payload", _json(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "idx_form_notifications_form_event", "form_notifications", ["form_id", "event"]
    )

    op.create_table(
        "addon_feeds",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "form_id",
            sa.Integer(),
            sa.ForeignKey("forms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("addon_slug", sa.String(100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("feed_order", sa.Integer(), nullable=False),
        sa.Column("meta", sa.Text(), nullable=True),
    )
    op.create_index("idx_addon_feeds_form", "addon_feeds", ["form_id"])

    op.create_table(
        "consumed_action_tokens",
        sa.Column("jti", sa.String(64), primary_key=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "consumed_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "idx_consumed_action_tokens_user", "consumed_action_tokens", ["user_id"]
    )


def downgrade() -> None:
    op.drop_index("idx_consumed_action_tokens_user", table_name="consumed_action_tokens")
    op.drop_table("consumed_action_tokens")
    op.drop_index("idx_addon_feeds_form", table_name="addon_feeds")
    op.drop_table("addon_feeds")
    op.drop_index("idx_form_notifications_form_event", table_name="form_notifications")
    op.drop_table("form_notifications")
    op.drop_table("form_meta")
    op.drop_index("idx_forms_active", table_name="forms")
    op.drop_table("forms")
    op.drop_table("users")
