"""CustomerService — customers with unique phone and email."""

from __future__ import annotations

from typing import TYPE_CHECKING

from minicrm.domain.entities import Customer
from minicrm.domain.validation import Validator, unique_field
from minicrm.services.base import EntityService, LevelStrategy

if TYPE_CHECKING:
    from minicrm.events.bus import EventBus
    from minicrm.infrastructure.repositories.generic import Repository


def customer_validator() -> Validator[Customer]:
    return Validator(
        rules=[
            unique_field("phone", label="phone number"),
            unique_field("email", label="email address"),
        ]
    )


class CustomerService(EntityService[Customer]):
    def __init__(
        self,
        repository: Repository[Customer],
        bus: EventBus,
        *,
        level_strategy: LevelStrategy | None = None,
    ) -> None:
        super().__init__(repository, customer_validator(), bus, level_strategy=level_strategy)
