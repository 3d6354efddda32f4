"""Add apps table

Revision ID: 001
Revises:
Create Date: 2026-09-28

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "apps",
        sa.Column("id", sa.String(length=255), nullable=False),
        sa.Column("app_name", sa.String(length=255), nullable=False),
        sa.Column("google_group_email", sa.String(length=320), nullable=False),
        sa.Column("play_store_url", sa.String(length=500), nullable=False),
        sa.Column("icon_url", sa.String(length=500), nullable=True),
        sa.Column("owner_email", sa.String(length=320), nullable=False),
        sa.Column("app_id_secret", sa.String(length=64), nullable=False),
        sa.Column("manage_group_automatically", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("owner_access_token_encrypted", sa.Text(), nullable=True),
        sa.Column("owner_refresh_token_encrypted", sa.Text(), nullable=True),
        sa.Column("is_setup_complete", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_apps_owner_email"), "apps", ["owner_email"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_apps_owner_email"), table_name="apps")
    op.drop_table("apps")
