"""Tests for EventBus subscription and dispatch."""

import logging

import pytest

from minicrm.domain.entities import Customer, Supplier
from minicrm.domain.errors import EventHandlingError
from minicrm.domain.events import Created, Deleted
from minicrm.events.bus import ALL_ENTITIES, EventBus
from tests.conftest import Recorder


def _created(entity_id: int = 1) -> Created:
    return Created.of(Customer(name="Acme", id=entity_id))


class TestSubscriptions:
    def test_only_matching_entity_type(self) -> None:
        bus = EventBus()
        customers, suppliers = Recorder(), Recorder()
        bus.subscribe("customers", customers)
        bus.subscribe("suppliers", suppliers)

        bus.publish(_created())

        assert customers.kinds == ["created"]
        assert suppliers.events == []

    def test_wildcard_receives_everything(self) -> None:
        bus = EventBus()
        everything = Recorder()
        bus.subscribe(ALL_ENTITIES, everything)
        bus.publish(_created())
        bus.publish(Created.of(Supplier(name="P", id=2)))
        assert [e.entity_name for e in everything.events] == ["customers", "suppliers"]

    def test_subscription_order_preserved(self) -> None:
        bus = EventBus()
        calls: list[str] = []
        bus.subscribe("customers", lambda e: calls.append("first"))
        bus.subscribe(ALL_ENTITIES, lambda e: calls.append("wildcard"))
        bus.subscribe("customers", lambda e: calls.append("third"))
        bus.publish(_created())
        assert calls == ["first", "wildcard", "third"]

    def test_unsubscribe(self) -> None:
        bus = EventBus()
        rec = bus.subscribe("customers", Recorder())
        assert bus.unsubscribe("customers", rec)
        assert not bus.unsubscribe("customers", rec)
        assert bus.handlers("customers") == []

    def test_clear(self) -> None:
        bus = EventBus()
        bus.subscribe(ALL_ENTITIES, Recorder())
        bus.clear()
        assert bus.handlers("customers") == []


class TestFailurePolicy:
    def test_best_effort_continues_and_reports(self, caplog: pytest.LogCaptureFixture) -> None:
        bus = EventBus()
        after = Recorder()

        def broken(event: object) -> None:
            raise RuntimeError("boom")

        bus.subscribe("customers", broken)
        bus.subscribe("customers", after)

        with caplog.at_level(logging.WARNING, logger="minicrm.events.bus"):
            failures = bus.publish(_created())

        assert len(failures) == 1
        assert failures[0].error == "boom"
        assert failures[0].event == "created"
        assert after.kinds == ["created"]
        assert "broken" in caplog.text

    def test_strict_raises_after_all_handlers(self) -> None:
        bus = EventBus(strict=True)
        after = Recorder()

        def broken(event: object) -> None:
            raise ValueError("nope")

        bus.subscribe(ALL_ENTITIES, broken)
        bus.subscribe(ALL_ENTITIES, after)

        with pytest.raises(EventHandlingError) as exc_info:
            bus.publish(Deleted(name="customers", id=1))
        assert after.kinds == ["deleted"]
        assert exc_info.value.failures[0].error == "nope"

    def test_no_failures(self) -> None:
        bus = EventBus(strict=True)
        bus.subscribe("customers", Recorder())
        assert bus.publish(_created()) == []
