"""Initial schema — pixels, quota_records, purchase_receipts.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "pixels",
        sa.Column("x", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("y", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("color", sa.String(7), nullable=False),
        sa.Column("owner", sa.String(128), nullable=False),
        sa.Column("written_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_pixels_written_at", "pixels", ["written_at"])

    op.create_table(
        "quota_records",
        sa.Column("user_id", sa.String(128), primary_key=True),
        sa.Column("daily_remaining", sa.Integer, nullable=False),
        sa.Column("last_reset_day", sa.Integer, nullable=False),
        sa.Column("purchased_balance", sa.Integer, nullable=False, server_default="0"),
        sa.CheckConstraint("daily_remaining >= 0", name="ck_quota_daily_non_negative"),
        sa.CheckConstraint("purchased_balance >= 0", name="ck_quota_purchased_non_negative"),
    )

    op.create_table(
        "purchase_receipts",
        sa.Column("proof_id", sa.String(66), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("credited_pixels", sa.Integer, nullable=False),
        sa.Column("total_purchased", sa.Integer, nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_purchase_receipts_user_id", "purchase_receipts", ["user_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_purchase_receipts_user_id", table_name="purchase_receipts")
    op.drop_table("purchase_receipts")
    op.drop_table("quota_records")
    op.drop_index("ix_pixels_written_at", table_name="pixels")
    op.drop_table("pixels")
