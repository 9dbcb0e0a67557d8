"""hosts and printers

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "hosts",
        sa.Column("host_id", sa.Text(), primary_key=True),
        sa.Column("online", sa.Boolean(), nullable=False),
        sa.Column("connected_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        "printers",
        sa.Column("remote_address", sa.Text(), primary_key=True),
        sa.Column("host_id", sa.Text(), nullable=True),
        sa.Column("online", sa.Boolean(), nullable=False),
        sa.Column("status", JSONType, nullable=False),
        sa.Column("connected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("friendly_name", sa.Text(), nullable=False, server_default=""),
        sa.Column("loaded_filament", JSONType, nullable=True),
    )
    op.create_index("ix_printers_host_id", "printers", ["host_id"])


def downgrade() -> None:
    op.drop_index("ix_printers_host_id", table_name="printers")
    op.drop_table("printers")
    op.drop_table("hosts")
