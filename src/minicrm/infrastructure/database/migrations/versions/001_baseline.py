"""Baseline schema: customers, suppliers, system_config.

Revision ID: 001_baseline
Revises:
Create Date: 2026-09-01
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def _create_party_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("contact_person", sa.Text()),
        sa.Column("phone", sa.Text(), unique=True),
        sa.Column("email", sa.Text(), unique=True),
        sa.Column("address", sa.Text()),
        sa.Column("level", sa.Text(), nullable=False),
        sa.Column("created_at", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.Text(), nullable=False),
    )
    op.create_index(f"ix_{name}_name", name, ["name"])
    op.create_index(f"ix_{name}_level", name, ["level"])


def upgrade() -> None:
    _create_party_table("customers")
    _create_party_table("suppliers")
    op.create_table(
        "system_config",
        sa.Column("key", sa.Text(), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.Text(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("system_config")
    for name in ("suppliers", "customers"):
        op.drop_index(f"ix_{name}_level", table_name=name)
        op.drop_index(f"ix_{name}_name", table_name=name)
        op.drop_table(name)
