"""EntityService — the one place where a business operation is orchestrated.

Every mutating operation runs the same pipeline::

    validate (schema, then rules) -> level strategy -> repository -> publish event

Events are published only after the repository call returned, i.e. after
the write committed. Handler failures are collected into the caller's
``warnings`` list (best-effort) or raised as
:class:`~minicrm.domain.errors.EventHandlingError` when the bus is strict.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, NoReturn, TypeVar

from minicrm.domain.entity import Entity, utc_now
from minicrm.domain.errors import (
    BusinessRuleError,
    ConflictError,
    FieldViolation,
    IdentityError,
    NotFoundError,
    ValidationError,
)
from minicrm.domain.events import Created, Deleted, DomainEvent, Updated
from minicrm.domain.search import SearchQuery, SearchResult
from minicrm.domain.validation import RuleContext, Validator

if TYPE_CHECKING:
    from minicrm.domain.levels import LevelLadder
    from minicrm.events.bus import EventBus
    from minicrm.infrastructure.repositories.generic import Repository

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)

LevelStrategy = Callable[[Any, Any], str | None]
"""``(entity, previous)`` -> the level to store. ``previous`` is None on create."""


def keep_level(entity: Any, previous: Any) -> str | None:
    """Default level strategy: never changes a level on its own.

    A new record arriving without a level gets its ladder's initial tier;
    an update without a level keeps the stored one.
    """
    ladder: LevelLadder | None = type(entity).level_ladder
    if ladder is None:
        return None
    if entity.level:
        return str(entity.level)
    if previous is not None and previous.level:
        return str(previous.level)
    return ladder.initial


def _unknown_level(ladder: LevelLadder) -> ValidationError:
    return ValidationError([FieldViolation("level", f"must be one of {', '.join(ladder.tiers)}")])


@dataclass(frozen=True)
class EntityStatistics:
    """Summary counts for one entity type."""

    total: int
    by_level: dict[str, int] = field(default_factory=dict)
    new_this_month: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_level": dict(self.by_level),
            "new_this_month": self.new_this_month,
        }


class EntityService(Generic[E]):
    """Validation, level policy, persistence and events for one entity type.

    Parameters:
        repository: Storage for the entity type.
        validator: Schema + business-rule pipeline.
        bus: Event bus the service publishes lifecycle events on.
        level_strategy: Optional level policy; only consulted for entity
            types with a level ladder. Defaults to :func:`keep_level`.
    """

    def __init__(
        self,
        repository: Repository[E],
        validator: Validator[E],
        bus: EventBus,
        *,
        level_strategy: LevelStrategy | None = None,
    ) -> None:
        self._repository = repository
        self._validator = validator
        self._bus = bus
        self._level_strategy = level_strategy or keep_level

    @property
    def entity_name(self) -> str:
        return self._repository.entity_name

    @property
    def repository(self) -> Repository[E]:
        return self._repository

    @property
    def ladder(self) -> LevelLadder | None:
        return self._repository.mapping.entity_cls.level_ladder

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, entity: E, *, warnings: list[str] | None = None) -> E:
        """Validate, persist and announce a new entity.

        Raises:
            IdentityError: If *entity* already has an id.
            ValidationError: If any schema field is invalid.
            BusinessRuleError: If a business rule (e.g. uniqueness) fails.
            StorageError: If the store rejects the write.
        """
        if not entity.is_new:
            msg = f"create() needs a new {self.entity_name}; got id {entity.id}"
            raise IdentityError(msg)

        self._validator.validate(entity, RuleContext(self._repository))
        self._apply_level_strategy(entity, previous=None)

        try:
            self._repository.create(entity)
        except ConflictError as exc:
            self._raise_conflict(entity, exc)

        logger.info("Created %s id=%s", self.entity_name, entity.id)
        self._publish(Created.of(entity), warnings)
        return entity

    def update(self, entity: E, *, warnings: list[str] | None = None) -> E:
        """Validate and persist changes to a stored entity.

        Raises:
            IdentityError: If *entity* has no id.
            NotFoundError: If no stored row has that id.
            ValidationError: If any schema field is invalid.
            BusinessRuleError: If a rule fails or the level change is illegal.
        """
        if entity.is_new:
            msg = f"update() needs a persisted {self.entity_name}; id is None"
            raise IdentityError(msg)

        old = self._require(entity.id)
        self._validator.validate(entity, RuleContext(self._repository, exclude_id=entity.id))
        self._check_level_change(old, entity)
        self._apply_level_strategy(entity, previous=old)

        try:
            self._repository.update(entity)
        except ConflictError as exc:
            self._raise_conflict(entity, exc)

        logger.info("Updated %s id=%s", self.entity_name, entity.id)
        self._publish(Updated.of(old, entity), warnings)
        return entity

    def delete(self, entity_id: int, *, warnings: list[str] | None = None) -> None:
        """Remove a stored entity and announce it.

        Raises:
            NotFoundError: If no stored row has *entity_id*.
        """
        last = self._require(entity_id)
        self._repository.delete(entity_id)
        logger.info("Deleted %s id=%s", self.entity_name, entity_id)
        self._publish(Deleted(name=self.entity_name, id=entity_id, entity=last), warnings)

    def change_level(
        self, entity_id: int, level: str, *, warnings: list[str] | None = None
    ) -> E:
        """Move a stored entity to a strictly higher tier.

        The stored entity is left untouched when the change is refused.

        Raises:
            NotFoundError: If no stored row has *entity_id*.
            ValidationError: If *level* is not a tier of this entity type.
            BusinessRuleError: If *level* is not above the current tier.
        """
        ladder = self._require_ladder()
        current = self._require(entity_id)
        if level not in ladder.tiers:
            raise _unknown_level(ladder)
        if level == current.level and level != ladder.top:
            raise BusinessRuleError(
                "level_unchanged",
                f"{current.display_label()} is already at level {level!r}",
                field="level",
                value=level,
            )
        target = current.with_changes({"level": level})
        if level == ladder.top and current.level == ladder.top:
            self._check_level_change(current, target, force=True)
        return self.update(target, warnings=warnings)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, entity_id: int) -> E:
        """Stored entity with *entity_id*.

        Raises:
            NotFoundError: If there is none.
        """
        return self._require(entity_id)

    def find(self, entity_id: int) -> E | None:
        return self._repository.find_by_id(entity_id)

    def list_all(self) -> list[E]:
        return self._repository.find_all()

    def search(self, query: SearchQuery) -> SearchResult[E]:
        return self._repository.search(query)

    def count(self) -> int:
        return self._repository.count()

    def statistics(self) -> EntityStatistics:
        """Totals per level plus the number created since the first of this month (UTC)."""
        by_level: dict[str, int] = {}
        ladder = self.ladder
        if ladder is not None:
            grouped = self._repository.count_grouped("level")
            by_level = {tier: grouped.get(tier, 0) for tier in ladder.tiers}
        month_start = utc_now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        return EntityStatistics(
            total=self._repository.count(),
            by_level=by_level,
            new_this_month=self._repository.count_created_since(month_start),
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _require(self, entity_id: int) -> E:
        entity = self._repository.find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_name, entity_id)
        return entity

    def _require_ladder(self) -> LevelLadder:
        ladder = self.ladder
        if ladder is None:
            msg = f"{self.entity_name} records have no levels"
            raise TypeError(msg)
        return ladder

    def _check_level_change(self, old: E, new: E, *, force: bool = False) -> None:
        """Refuse any level change that is not a strict upgrade.

        An unchanged level passes unless *force* is set.
        """
        ladder = self.ladder
        if ladder is None:
            return
        before, after = getattr(old, "level", None), getattr(new, "level", None)
        if after is None or before is None or (after == before and not force):
            return
        if before == ladder.top:
            raise BusinessRuleError(
                "level_final",
                f"{new.display_label()} is already at the top level {before!r}",
                field="level",
                value=after,
            )
        if not ladder.can_transition(before, after):
            raise BusinessRuleError(
                "level_upgrade_only",
                f"Level can only move up: {before!r} -> {after!r} is not allowed",
                field="level",
                value=after,
            )

    def _apply_level_strategy(self, entity: E, *, previous: E | None) -> None:
        ladder = self.ladder
        if ladder is None:
            return
        level = self._level_strategy(entity, previous)
        if level is None:
            return
        level = str(level)
        if level not in ladder.tiers:
            raise _unknown_level(ladder)
        current = getattr(previous, "level", None) if previous is not None else None
        if current and ladder.rank(level) < ladder.rank(current):
            raise BusinessRuleError(
                "level_upgrade_only",
                f"Level strategy may not downgrade {current!r} to {level!r}",
                field="level",
                value=level,
            )
        entity.level = level

    def _raise_conflict(self, entity: E, exc: ConflictError) -> NoReturn:
        """Re-raise a storage conflict as the rule that guards the same field."""
        rule = self._validator.rule_for_field(exc.field) if exc.field else None
        if rule is None:
            raise exc
        message = rule.message(entity) if callable(rule.message) else rule.message
        raise BusinessRuleError(
            rule.name, message, field=exc.field, value=getattr(entity, exc.field, None)
        ) from exc

    def _publish(self, event: DomainEvent, warnings: list[str] | None) -> None:
        """Publish after commit. Failures become warnings unless the bus is strict."""
        failures = self._bus.publish(event)
        if warnings is not None:
            warnings.extend(
                f"Event handler {f.handler} failed on {f.event}: {f.error}" for f in failures
            )
