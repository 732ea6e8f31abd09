"""SupplierService — suppliers with unique phone and email."""

from __future__ import annotations

from typing import TYPE_CHECKING

from minicrm.domain.entities import Supplier
from minicrm.domain.validation import Validator, unique_field
from minicrm.services.base import EntityService, LevelStrategy

if TYPE_CHECKING:
    from minicrm.events.bus import EventBus
    from minicrm.infrastructure.repositories.generic import Repository


def supplier_validator() -> Validator[Supplier]:
    return Validator(
        rules=[
            unique_field("phone", label="phone number"),
            unique_field("email", label="email address"),
        ]
    )


class SupplierService(EntityService[Supplier]):
    def __init__(
        self,
        repository: Repository[Supplier],
        bus: EventBus,
        *,
        level_strategy: LevelStrategy | None = None,
    ) -> None:
        super().__init__(repository, supplier_validator(), bus, level_strategy=level_strategy)
