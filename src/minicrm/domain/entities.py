"""Concrete business entities — customers and suppliers.

Each entity pairs a loosely typed record (what callers build and the
store returns) with a strict schema model (what the record must satisfy
before it may be written). Both carry an ordered ``level`` tier.
"""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, Field

from minicrm.domain.entity import Entity
from minicrm.domain.levels import (
    CUSTOMER_LADDER,
    SUPPLIER_LADDER,
    CustomerLevel,
    LevelLadder,
    SupplierLevel,
)

# Mainland mobile numbers or area-code landlines (010-12345678).
PHONE_PATTERN = r"^(1[3-9]\d{9}|0\d{2,3}-?\d{7,8})$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$"

NAME_MAX = 100
CONTACT_MAX = 50
ADDRESS_MAX = 200


# ---------------------------------------------------------------------------
# Schema models
# ---------------------------------------------------------------------------


class _PartySchema(BaseModel):
    """Field rules shared by every party-type record."""

    model_config = {"str_strip_whitespace": True}

    name: str = Field(min_length=1, max_length=NAME_MAX)
    contact_person: str | None = Field(default=None, max_length=CONTACT_MAX)
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN, max_length=254)
    address: str | None = Field(default=None, max_length=ADDRESS_MAX)


class CustomerSchema(_PartySchema):
    level: CustomerLevel | None = None


class SupplierSchema(_PartySchema):
    level: SupplierLevel | None = None


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class _Party(Entity):
    model_config = {"extra": "forbid", "str_strip_whitespace": True, "validate_assignment": True}

    name: str = ""
    contact_person: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    level: str | None = None

    def display_label(self) -> str:
        if self.phone:
            return f"{self.name} ({self.phone})"
        return self.name or super().display_label()


class Customer(_Party):
    """A customer record, tiered potential < normal < important < vip."""

    entity_name: ClassVar[str] = "customers"
    schema_model: ClassVar[type[BaseModel]] = CustomerSchema
    level_ladder: ClassVar[LevelLadder | None] = CUSTOMER_LADDER


class Supplier(_Party):
    """A supplier record, tiered normal < premium < strategic."""

    entity_name: ClassVar[str] = "suppliers"
    schema_model: ClassVar[type[BaseModel]] = SupplierSchema
    level_ladder: ClassVar[LevelLadder | None] = SUPPLIER_LADDER
