"""Entity contract — identity, schema validation, and naming for business records.

An :class:`Entity` is a mutable pydantic model. Its fields are typed
loosely on purpose: a record can be built from raw user input and only
rejected later by :meth:`Entity.schema_violations`, which runs the
stricter ``schema_model`` and reports every invalid field at once.

INVARIANT: ``id`` is assigned exactly once, by the store. An entity with
``id is None`` has never been persisted.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, ClassVar, Self

import pydantic
from pydantic import BaseModel, Field, model_validator

from minicrm.domain.errors import FieldViolation, IdentityError
from minicrm.domain.levels import LevelLadder

IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


def utc_now() -> datetime:
    """Current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class Entity(BaseModel):
    """Base business record.

    Subclasses set ``entity_name`` (the table name), ``schema_model``
    (a strict pydantic model mirroring the entity fields) and, for tiered
    records, ``level_ladder``. They override :meth:`display_label`.
    """

    model_config = {"extra": "forbid"}

    entity_name: ClassVar[str] = ""
    schema_model: ClassVar[type[BaseModel] | None] = None
    level_ladder: ClassVar[LevelLadder | None] = None

    id: int | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _default_updated_at(self) -> Self:
        if self.updated_at is None:
            self.__dict__["updated_at"] = self.created_at
        return self

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "id" and self.__dict__.get("id") is not None:
            msg = f"{self.entity_name} already has id {self.id}; ids are immutable"
            raise IdentityError(msg)
        super().__setattr__(name, value)

    # --- Identity ---

    def get_id(self) -> int | None:
        return self.id

    def set_id(self, entity_id: int) -> None:
        """Assign the store-generated id. Callable once per instance.

        Raises:
            IdentityError: If the entity already has an id.
        """
        if self.id is not None:
            msg = f"{self.entity_name} already has id {self.id}; cannot assign {entity_id}"
            raise IdentityError(msg)
        self.id = entity_id

    @property
    def is_new(self) -> bool:
        return self.id is None

    # --- Naming ---

    def display_label(self) -> str:
        return f"{self.entity_name} #{self.id}" if self.id is not None else self.entity_name

    # --- Lifecycle helpers ---

    def touch(self) -> None:
        """Refresh ``updated_at``; always moves forward, even on a coarse clock."""
        now = utc_now()
        previous = self.updated_at or self.created_at
        if now <= previous:
            now = previous + timedelta(microseconds=1)
        self.updated_at = now

    def snapshot(self) -> Self:
        """Deep copy, used for event payloads and before/after comparisons."""
        return self.model_copy(deep=True)

    def with_changes(self, changes: dict[str, Any]) -> Self:
        """Return a copy with *changes* applied to the mutable fields.

        Raises:
            IdentityError: If *changes* touches ``id`` or ``created_at``.
            KeyError: If *changes* names a field the entity does not have.
        """
        blocked = IMMUTABLE_FIELDS & changes.keys()
        if blocked:
            msg = f"Cannot change immutable field(s): {sorted(blocked)}"
            raise IdentityError(msg)
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            msg = f"Unknown field(s) for {self.entity_name}: {sorted(unknown)}"
            raise KeyError(msg)
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)

    # --- Schema validation ---

    def schema_violations(self) -> list[FieldViolation]:
        """Validate the record against ``schema_model``; never mutates ``self``.

        Returns every violated field rather than stopping at the first.
        """
        if self.schema_model is None:
            return []
        fields = set(self.schema_model.model_fields)
        try:
            self.schema_model.model_validate(self.model_dump(include=fields))
        except pydantic.ValidationError as exc:
            return [
                FieldViolation(
                    field=".".join(str(part) for part in err["loc"]) or "__root__",
                    message=err["msg"],
                )
                for err in exc.errors()
            ]
        return []
