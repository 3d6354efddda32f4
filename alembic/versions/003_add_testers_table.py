"""Add testers table

Revision ID: 003
Revises: 002
Create Date: 2026-09-29

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "testers",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("app_id", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("has_joined_group", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("promotional_code", sa.String(length=255), nullable=True),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["app_id"], ["apps.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("app_id", "email", name="uq_testers_app_email"),
    )
    op.create_index(op.f("ix_testers_app_id"), "testers", ["app_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_testers_app_id"), table_name="testers")
    op.drop_table("testers")
