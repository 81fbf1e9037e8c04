"""initial schema

Revision ID: 0001
Revises: 
Create Date: 2026-10-17 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("owner_id", sa.Text(), primary_key=True),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("name", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("email = lower(email)", name="accounts_email_lower_check"),
    )

    op.create_table(
        "user_groups",
        sa.Column(
            "owner_id",
            sa.Text(),
            sa.ForeignKey("accounts.owner_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "groups",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("user_groups")
    op.drop_table("accounts")
