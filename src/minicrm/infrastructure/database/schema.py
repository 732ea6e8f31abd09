"""SQLAlchemy Core table definitions for the minicrm database.

One table per entity type; column names are the entity's field names.
Uniqueness of phone and email is declared here, at the storage layer,
so it holds even when two writers race past the service-level probe.
Timestamps are stored as ISO 8601 text to keep their UTC offset.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
)

metadata = MetaData()


def _party_table(name: str) -> Table:
    """Columns shared by customers and suppliers."""
    return Table(
        name,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", Text, nullable=False),
        Column("contact_person", Text),
        Column("phone", Text, unique=True),
        Column("email", Text, unique=True),
        Column("address", Text),
        Column("level", Text, nullable=False),
        Column("created_at", Text, nullable=False),
        Column("updated_at", Text, nullable=False),
    )


customers = _party_table("customers")
suppliers = _party_table("suppliers")

system_config = Table(
    "system_config",
    metadata,
    Column("key", Text, primary_key=True),
    Column("value", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_customers_name", customers.c.name)
Index("ix_customers_level", customers.c.level)
Index("ix_suppliers_name", suppliers.c.name)
Index("ix_suppliers_level", suppliers.c.level)

SCHEMA_VERSION = "1"

ENTITY_TABLES: tuple[str, ...] = ("customers", "suppliers")
