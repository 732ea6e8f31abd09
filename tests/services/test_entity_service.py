"""Tests for EntityService orchestration over customers and suppliers."""

from typing import Any

import pytest

from minicrm.domain.entities import Customer
from minicrm.domain.errors import (
    BusinessRuleError,
    EventHandlingError,
    IdentityError,
    NotFoundError,
    ValidationError,
)
from minicrm.domain.events import Created, Deleted, Updated
from minicrm.domain.search import SearchQuery
from minicrm.events.bus import ALL_ENTITIES, EventBus
from minicrm.infrastructure.repositories import Repository
from minicrm.services.customers import CustomerService
from minicrm.services.suppliers import SupplierService
from tests.conftest import Recorder, make_customer, make_supplier


class TestCreate:
    def test_schema_failure_lists_every_field(self, customers: CustomerService) -> None:
        with pytest.raises(ValidationError) as exc_info:
            customers.create(Customer(name="", phone="123", email="bad"))
        assert set(exc_info.value.fields) == {"name", "phone", "email"}
        assert customers.count() == 0

    def test_duplicate_phone_is_business_rule(self, customers: CustomerService) -> None:
        customers.create(make_customer("A", phone="13812345678"))
        with pytest.raises(BusinessRuleError) as exc_info:
            customers.create(make_customer("B", phone="13812345678"))
        assert exc_info.value.rule == "unique_phone"
        assert exc_info.value.field == "phone"
        assert customers.count() == 1

    def test_padded_duplicate_phone_is_refused(self, customers: CustomerService) -> None:
        customers.create(Customer(name="Zhang San", phone="13812345678"))
        with pytest.raises(BusinessRuleError) as exc_info:
            customers.create(Customer(name="Li Si", phone=" 13812345678 "))
        assert exc_info.value.rule == "unique_phone"
        assert customers.count() == 1

    def test_stored_values_are_stripped(self, customers: CustomerService) -> None:
        c = customers.create(Customer(name="  Zhang San ", phone=" 13812345678 "))
        assert c.id is not None
        stored = customers.get(c.id)
        assert stored.name == "Zhang San"
        assert stored.phone == "13812345678"

    def test_duplicate_email(self, suppliers: SupplierService) -> None:
        suppliers.create(make_supplier("A", phone=None, email="x@parts.com"))
        with pytest.raises(BusinessRuleError, match="email"):
            suppliers.create(make_supplier("B", phone=None, email="x@parts.com"))

    def test_storage_conflict_translated(
        self, customers: CustomerService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """When the advisory probe misses a duplicate, the constraint still wins."""
        customers.create(make_customer("A", phone="13812345678"))
        monkeypatch.setattr(customers.repository, "exists", lambda *a, **kw: False)
        with pytest.raises(BusinessRuleError) as exc_info:
            customers.create(make_customer("B", phone="13812345678"))
        assert exc_info.value.rule == "unique_phone"
        assert customers.count() == 1

    def test_default_level_is_initial_tier(
        self, customers: CustomerService, suppliers: SupplierService
    ) -> None:
        assert customers.create(make_customer()).level == "normal"
        assert suppliers.create(make_supplier()).level == "normal"

    def test_explicit_level_kept(self, customers: CustomerService) -> None:
        assert customers.create(make_customer(level="potential")).level == "potential"

    def test_rejects_persisted_entity(self, customers: CustomerService) -> None:
        with pytest.raises(IdentityError):
            customers.create(make_customer(id=3))

    def test_level_strategy_injected(self, customer_repo: Repository[Customer]) -> None:
        def always_vip(entity: Any, previous: Any) -> str:
            return "vip"

        service = CustomerService(customer_repo, EventBus(), level_strategy=always_vip)
        assert service.create(make_customer()).level == "vip"

    def test_strategy_tier_outside_ladder(self, customer_repo: Repository[Customer]) -> None:
        def gold(entity: Any, previous: Any) -> str:
            return "gold"

        service = CustomerService(customer_repo, EventBus(), level_strategy=gold)
        with pytest.raises(ValidationError) as exc_info:
            service.create(make_customer())
        assert exc_info.value.fields == ["level"]
        assert service.count() == 0


class TestUpdate:
    def test_never_created_id(self, customers: CustomerService) -> None:
        with pytest.raises(NotFoundError):
            customers.update(make_customer(id=999))
        assert customers.count() == 0

    def test_deleted_id(self, customers: CustomerService) -> None:
        c = customers.create(make_customer())
        assert c.id is not None
        customers.delete(c.id)
        with pytest.raises(NotFoundError):
            customers.update(c)
        assert customers.count() == 0

    def test_requires_id(self, customers: CustomerService) -> None:
        with pytest.raises(IdentityError):
            customers.update(make_customer())

    def test_own_phone_is_not_a_duplicate(self, customers: CustomerService) -> None:
        c = customers.create(make_customer(phone="13812345678"))
        c.address = "1 Main St"
        assert customers.update(c).address == "1 Main St"

    def test_invalid_update_leaves_store(self, customers: CustomerService) -> None:
        c = customers.create(make_customer())
        assert c.id is not None
        with pytest.raises(ValidationError):
            customers.update(c.with_changes({"email": "nope"}))
        stored = customers.get(c.id)
        assert stored.email is None

    def test_downgrade_via_update_refused(self, customers: CustomerService) -> None:
        c = customers.create(make_customer(level="vip"))
        with pytest.raises(BusinessRuleError):
            customers.update(c.with_changes({"level": "important"}))

    def test_upgrade_via_update(self, customers: CustomerService) -> None:
        c = customers.create(make_customer())
        assert customers.update(c.with_changes({"level": "important"})).level == "important"


class TestLevels:
    def test_transition_sequence(self, customers: CustomerService) -> None:
        c = customers.create(make_customer())
        assert c.id is not None
        assert customers.change_level(c.id, "important").level == "important"
        assert customers.change_level(c.id, "vip").level == "vip"

        with pytest.raises(BusinessRuleError):
            customers.change_level(c.id, "important")
        assert customers.get(c.id).level == "vip"

        with pytest.raises(BusinessRuleError):
            customers.change_level(c.id, "vip")
        assert customers.get(c.id).level == "vip"

    def test_same_level_refused(self, suppliers: SupplierService) -> None:
        s = suppliers.create(make_supplier())
        assert s.id is not None
        with pytest.raises(BusinessRuleError, match="already"):
            suppliers.change_level(s.id, "normal")

    def test_unknown_level(self, suppliers: SupplierService) -> None:
        s = suppliers.create(make_supplier())
        assert s.id is not None
        with pytest.raises(ValidationError):
            suppliers.change_level(s.id, "vip")

    def test_missing_entity(self, customers: CustomerService) -> None:
        with pytest.raises(NotFoundError):
            customers.change_level(42, "vip")

    def test_publishes_update(self, customers: CustomerService, bus: EventBus) -> None:
        c = customers.create(make_customer())
        assert c.id is not None
        rec = bus.subscribe("customers", Recorder())
        customers.change_level(c.id, "vip")
        assert rec.kinds == ["updated"]
        assert rec.events[0].changed_fields() == ["level", "updated_at"]


class TestSearchAndStats:
    def test_pagination_by_name(self, customers: CustomerService) -> None:
        for i, name in enumerate(["Eve", "Bob", "Dan", "Amy", "Cat"]):
            customers.create(make_customer(name, phone=f"1380000000{i}"))
        first = customers.search(SearchQuery(sort_field="name", page=0, page_size=2))
        assert [c.name for c in first.items] == ["Amy", "Bob"]
        assert first.total_count == 5
        assert customers.search(SearchQuery(page=2, page_size=3)).total_count == 5

    def test_find_nonexistent_twice(self, customers: CustomerService) -> None:
        assert customers.find(12345) is None
        assert customers.find(12345) is None
        assert customers.count() == 0

    def test_statistics(self, customers: CustomerService) -> None:
        customers.create(make_customer("A", phone="13800000001", level="vip"))
        customers.create(make_customer("B", phone="13800000002"))
        stats = customers.statistics()
        assert stats.total == 2
        assert stats.by_level == {"potential": 0, "normal": 1, "important": 0, "vip": 1}
        assert stats.new_this_month == 2
        assert stats.to_dict()["by_level"]["vip"] == 1


class TestEvents:
    def test_best_effort_failure_becomes_warning(
        self, customers: CustomerService, bus: EventBus
    ) -> None:
        def broken(event: object) -> None:
            raise RuntimeError("mailer down")

        bus.subscribe(ALL_ENTITIES, broken)
        warnings: list[str] = []
        c = customers.create(make_customer(), warnings=warnings)
        assert c.id is not None
        assert customers.find(c.id) is not None
        assert len(warnings) == 1
        assert "mailer down" in warnings[0]

    def test_strict_failure_after_commit(self, customer_repo: Repository[Customer]) -> None:
        bus = EventBus(strict=True)
        service = CustomerService(customer_repo, bus)

        def broken(event: object) -> None:
            raise RuntimeError("boom")

        bus.subscribe("customers", broken)
        with pytest.raises(EventHandlingError):
            service.create(make_customer())
        assert service.count() == 1

    def test_failed_write_publishes_nothing(
        self, customers: CustomerService, bus: EventBus
    ) -> None:
        rec = bus.subscribe("customers", Recorder())
        with pytest.raises(ValidationError):
            customers.create(Customer(name=""))
        assert rec.events == []


class TestEndToEnd:
    def test_customer_lifecycle(self, customers: CustomerService, bus: EventBus) -> None:
        rec = bus.subscribe("customers", Recorder())

        c = customers.create(Customer(name="Zhang San", phone="13812345678"))
        assert c.id is not None
        assert c.level == "normal"
        assert rec.kinds == ["created"]
        created = rec.events[0]
        assert isinstance(created, Created)
        assert created.entity.id == c.id

        before = customers.get(c.id)
        changed = customers.update(before.with_changes({"phone": "13900000000"}))
        assert rec.kinds == ["created", "updated"]
        updated = rec.events[1]
        assert isinstance(updated, Updated)
        assert updated.old.phone == "13812345678"
        assert updated.new.phone == "13900000000"
        assert updated.old.id == updated.new.id == c.id
        assert changed.updated_at != before.updated_at

        customers.delete(c.id)
        assert rec.kinds == ["created", "updated", "deleted"]
        deleted = rec.events[2]
        assert isinstance(deleted, Deleted)
        assert deleted.entity is not None
        assert deleted.entity.phone == "13900000000"

        assert customers.find(c.id) is None
        with pytest.raises(NotFoundError):
            customers.update(changed)
        with pytest.raises(NotFoundError):
            customers.delete(c.id)
        assert rec.kinds == ["created", "updated", "deleted"]
