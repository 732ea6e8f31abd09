"""Per-entity-type field mappings handed to :class:`Repository`.

Each mapping lists its columns explicitly. Timestamps are written as
ISO 8601 text and parsed back into aware datetimes.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, TypeVar

from minicrm.domain.entities import Customer, Supplier
from minicrm.infrastructure.database.schema import customers, suppliers
from minicrm.infrastructure.repositories.generic import EntityMapping

_PartyT = TypeVar("_PartyT", Customer, Supplier)

PARTY_KEYWORD_COLUMNS = ("name", "contact_person", "phone", "email")


def party_to_row(entity: Customer | Supplier) -> dict[str, Any]:
    """Column values for a customer or supplier row."""
    return {
        "id": entity.id,
        "name": entity.name,
        "contact_person": entity.contact_person,
        "phone": entity.phone,
        "email": entity.email,
        "address": entity.address,
        "level": str(entity.level) if entity.level is not None else None,
        "created_at": entity.created_at.isoformat(),
        "updated_at": (entity.updated_at or entity.created_at).isoformat(),
    }


def _party_from_row(cls: type[_PartyT], row: Mapping[str, Any]) -> _PartyT:
    return cls(
        id=row["id"],
        name=row["name"],
        contact_person=row["contact_person"],
        phone=row["phone"],
        email=row["email"],
        address=row["address"],
        level=row["level"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def customer_from_row(row: Mapping[str, Any]) -> Customer:
    return _party_from_row(Customer, row)


def supplier_from_row(row: Mapping[str, Any]) -> Supplier:
    return _party_from_row(Supplier, row)


CUSTOMER_MAPPING: EntityMapping[Customer] = EntityMapping(
    table=customers,
    entity_cls=Customer,
    to_row=party_to_row,
    from_row=customer_from_row,
    keyword_columns=PARTY_KEYWORD_COLUMNS,
)

SUPPLIER_MAPPING: EntityMapping[Supplier] = EntityMapping(
    table=suppliers,
    entity_cls=Supplier,
    to_row=party_to_row,
    from_row=supplier_from_row,
    keyword_columns=PARTY_KEYWORD_COLUMNS,
)
