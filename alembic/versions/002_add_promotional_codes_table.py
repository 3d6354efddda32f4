"""Add promotional_codes table

Revision ID: 002
Revises: 001
Create Date: 2026-09-28

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "promotional_codes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("app_id", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("redeemed_at", sa.DateTime(), nullable=True),
        sa.Column("redeemed_by", sa.String(length=320), nullable=True),
        sa.ForeignKeyConstraint(["app_id"], ["apps.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_promotional_codes_app_id"), "promotional_codes", ["app_id"], unique=False)
    op.create_index(
        "ix_promotional_codes_app_id_redeemed_at",
        "promotional_codes",
        ["app_id", "redeemed_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_promotional_codes_app_id_redeemed_at", table_name="promotional_codes")
    op.drop_index(op.f("ix_promotional_codes_app_id"), table_name="promotional_codes")
    op.drop_table("promotional_codes")
