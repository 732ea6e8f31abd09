"""Tests for the schema + business-rule validation pipeline."""

from typing import Any

import pytest

from minicrm.domain.entities import Customer
from minicrm.domain.errors import BusinessRuleError, ValidationError
from minicrm.domain.validation import RuleContext, ValidationRule, Validator, unique_field


class FakeProbe:
    """Answers ``exists`` from an in-memory set of (column, value, id)."""

    def __init__(self, rows: list[tuple[str, Any, int]] | None = None) -> None:
        self.rows = rows or []
        self.calls = 0

    def exists(self, column: str, value: Any, *, exclude_id: int | None = None) -> bool:
        self.calls += 1
        return any(c == column and v == value and i != exclude_id for c, v, i in self.rows)


class TestSchemaTier:
    def test_aggregates_every_field(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Validator().validate_schema(Customer(name="", phone="1", email="x"))
        assert set(exc_info.value.fields) == {"name", "phone", "email"}
        assert exc_info.value.code == "VALIDATION_FAILED"

    def test_schema_failure_skips_rules(self) -> None:
        probe = FakeProbe()
        validator = Validator(rules=[unique_field("phone")])
        with pytest.raises(ValidationError):
            validator.validate(Customer(name=""), RuleContext(probe))
        assert probe.calls == 0


class TestRuleTier:
    def test_unique_field_conflict(self) -> None:
        probe = FakeProbe([("phone", "13800138000", 1)])
        validator = Validator(rules=[unique_field("phone")])
        with pytest.raises(BusinessRuleError) as exc_info:
            validator.validate(Customer(name="B", phone="13800138000"), RuleContext(probe))
        assert exc_info.value.rule == "unique_phone"
        assert exc_info.value.field == "phone"
        assert exc_info.value.value == "13800138000"

    def test_own_id_excluded(self) -> None:
        probe = FakeProbe([("phone", "13800138000", 1)])
        validator = Validator(rules=[unique_field("phone")])
        entity = Customer(name="A", phone="13800138000", id=1)
        validator.validate(entity, RuleContext(probe, exclude_id=1))

    def test_empty_values_not_probed(self) -> None:
        probe = FakeProbe()
        Validator(rules=[unique_field("email")]).validate(Customer(name="A"), RuleContext(probe))
        assert probe.calls == 0

    def test_rules_short_circuit_in_order(self) -> None:
        seen: list[str] = []

        def failing(name: str) -> ValidationRule[Any]:
            return ValidationRule(
                name=name, check=lambda e, ctx: seen.append(name) or False, message=name
            )

        validator = Validator(rules=[failing("first"), failing("second")])
        with pytest.raises(BusinessRuleError, match="first"):
            validator.validate_rules(Customer(name="A"), RuleContext(FakeProbe()))
        assert seen == ["first"]

    def test_rule_for_field(self) -> None:
        validator = Validator(rules=[unique_field("phone"), unique_field("email")])
        rule = validator.rule_for_field("email")
        assert rule is not None
        assert rule.name == "unique_email"
        assert validator.rule_for_field("name") is None
