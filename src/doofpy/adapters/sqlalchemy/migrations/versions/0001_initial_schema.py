"""Initial catalog, area and change ledger schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "catalog_entity",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("fields", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_catalog_entity"),
    )
    op.create_index("ix_catalog_entity_category", "catalog_entity", ["category"])

    op.create_table(
        "administrative_area",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("postal_codes", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_administrative_area"),
    )

    op.create_table(
        "change_ledger",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("change_id", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("field", sa.String(length=100), nullable=False),
        sa.Column("action", sa.String(length=16), nullable=False),
        sa.Column("snapshot", sa.JSON(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_change_ledger"),
    )
    op.create_index("ix_change_ledger_change_id", "change_ledger", ["change_id"])
    op.create_index("ix_change_ledger_entity", "change_ledger", ["category", "entity_id"])


def downgrade() -> None:
    op.drop_index("ix_change_ledger_entity", table_name="change_ledger")
    op.drop_index("ix_change_ledger_change_id", table_name="change_ledger")
    op.drop_table("change_ledger")
    op.drop_table("administrative_area")
    op.drop_index("ix_catalog_entity_category", table_name="catalog_entity")
    op.drop_table("catalog_entity")
