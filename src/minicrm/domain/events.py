"""Domain events — immutable notifications of entity lifecycle changes.

Events carry full entity snapshots (never deltas) so handlers do not
need to re-fetch anything. Snapshots are deep copies taken at publish
time; later mutation of the live entity does not leak into an event.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from minicrm.domain.entity import Entity


@dataclass(frozen=True)
class DomainEvent(ABC):
    """Base for lifecycle events. ``kind`` names the variant."""

    kind: ClassVar[str] = ""

    @property
    @abstractmethod
    def entity_name(self) -> str: ...

    @property
    @abstractmethod
    def entity_id(self) -> int | None: ...


@dataclass(frozen=True)
class Created(DomainEvent):
    entity: Entity

    kind: ClassVar[str] = "created"

    @classmethod
    def of(cls, entity: Entity) -> Created:
        return cls(entity=entity.snapshot())

    @property
    def entity_name(self) -> str:
        return self.entity.entity_name

    @property
    def entity_id(self) -> int | None:
        return self.entity.id


@dataclass(frozen=True)
class Updated(DomainEvent):
    old: Entity
    new: Entity

    kind: ClassVar[str] = "updated"

    @classmethod
    def of(cls, old: Entity, new: Entity) -> Updated:
        return cls(old=old.snapshot(), new=new.snapshot())

    @property
    def entity_name(self) -> str:
        return self.new.entity_name

    @property
    def entity_id(self) -> int | None:
        return self.new.id

    def changed_fields(self) -> list[str]:
        """Field names whose values differ between ``old`` and ``new``."""
        before = self.old.model_dump()
        after = self.new.model_dump()
        return sorted(key for key in after if before.get(key) != after[key])


@dataclass(frozen=True)
class Deleted(DomainEvent):
    """Removal of a row. ``entity`` is the last stored snapshot, when known."""

    name: str
    id: int
    entity: Entity | None = None

    kind: ClassVar[str] = "deleted"

    @property
    def entity_name(self) -> str:
        return self.name

    @property
    def entity_id(self) -> int | None:
        return self.id
