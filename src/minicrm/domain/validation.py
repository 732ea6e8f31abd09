"""Two-tier validation pipeline: schema first, then business rules.

Schema validation aggregates every violated field into one
:class:`~minicrm.domain.errors.ValidationError`. Business rules run in
declaration order and stop at the first failure, since later rules may
rely on invariants checked by earlier ones.

Validation never mutates the entity; it only accepts or rejects.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

from minicrm.domain.errors import BusinessRuleError, ValidationError

if TYPE_CHECKING:
    from minicrm.domain.entity import Entity

E = TypeVar("E", bound="Entity")


class UniquenessProbe(Protocol):
    """The slice of a repository that business rules may read."""

    def exists(self, column: str, value: Any, *, exclude_id: int | None = None) -> bool: ...


@dataclass(frozen=True)
class RuleContext:
    """What a business rule may consult besides the entity itself.

    Attributes:
        repository: Read access to the entity's store.
        exclude_id: The entity's own id on update, so it never collides with itself.
    """

    repository: UniquenessProbe
    exclude_id: int | None = None


@dataclass(frozen=True)
class ValidationRule(Generic[E]):
    """A named predicate plus the message used when it fails.

    ``check`` returns True when the entity satisfies the rule.
    ``field`` names the offending field, when the rule is about one.
    """

    name: str
    check: Callable[[E, RuleContext], bool]
    message: str | Callable[[E], str]
    field: str | None = None

    def evaluate(self, entity: E, ctx: RuleContext) -> None:
        """Raise :class:`BusinessRuleError` if *entity* breaks this rule."""
        if self.check(entity, ctx):
            return
        message = self.message(entity) if callable(self.message) else self.message
        value = getattr(entity, self.field, None) if self.field else None
        raise BusinessRuleError(self.name, message, field=self.field, value=value)


def unique_field(field_name: str, *, label: str | None = None) -> ValidationRule[Any]:
    """Rule: no other stored row may share this field's value.

    Empty values are not compared. This probe is advisory only; the
    storage-layer unique constraint is the authoritative check.
    """
    label = label or field_name

    def _check(entity: Entity, ctx: RuleContext) -> bool:
        value = getattr(entity, field_name)
        if value in (None, ""):
            return True
        return not ctx.repository.exists(field_name, value, exclude_id=ctx.exclude_id)

    def _message(entity: Entity) -> str:
        value = getattr(entity, field_name)
        return f"A {entity.entity_name} record with {label} {value!r} already exists"

    return ValidationRule(
        name=f"unique_{field_name}",
        check=_check,
        message=_message,
        field=field_name,
    )


@dataclass
class Validator(Generic[E]):
    """Schema validation followed by an ordered list of business rules."""

    rules: Sequence[ValidationRule[E]] = field(default_factory=list)

    def validate_schema(self, entity: E) -> None:
        """Raise :class:`ValidationError` listing every invalid field."""
        violations = entity.schema_violations()
        if violations:
            raise ValidationError(violations)

    def validate_rules(self, entity: E, ctx: RuleContext) -> None:
        """Raise :class:`BusinessRuleError` for the first failing rule."""
        for rule in self.rules:
            rule.evaluate(entity, ctx)

    def validate(self, entity: E, ctx: RuleContext) -> None:
        self.validate_schema(entity)
        self.validate_rules(entity, ctx)

    def rule_for_field(self, field_name: str) -> ValidationRule[E] | None:
        """The first rule guarding *field_name*, used to phrase storage conflicts."""
        for rule in self.rules:
            if rule.field == field_name:
                return rule
        return None
