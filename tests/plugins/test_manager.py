"""Tests for PluginManager and the built-in audit plugin."""

import logging
from types import SimpleNamespace
from typing import Any
from unittest.mock import patch

import pytest

from minicrm.domain.entities import Customer
from minicrm.domain.events import Created, Deleted, Updated
from minicrm.events.bus import ALL_ENTITIES, EventBus
from minicrm.plugins.builtins.audit import AuditLogPlugin
from minicrm.plugins.hookspecs import hookimpl
from minicrm.plugins.manager import ENTRY_POINT_GROUP, PluginManager
from tests.conftest import Recorder


class _RecordingPlugin:
    def __init__(self) -> None:
        self.recorder = Recorder()

    @hookimpl
    def register_event_handlers(self, bus: EventBus) -> None:
        bus.subscribe("customers", self.recorder)


class _RenamedHookPlugin:
    def __init__(self) -> None:
        self.recorder = Recorder()

    @hookimpl(specname="register_event_handlers")
    def subscribe(self, bus: EventBus) -> None:
        bus.subscribe("suppliers", self.recorder)


class _BrokenPlugin:
    @hookimpl
    def register_event_handlers(self, bus: EventBus) -> None:
        raise RuntimeError("cannot register")


class TestPluginManager:
    def test_register_and_list(self) -> None:
        pm = PluginManager()
        pm.register_plugin(_RecordingPlugin(), name="recording")
        assert "recording" in pm.list_plugin_names()

    def test_attach_subscribes_handlers(self) -> None:
        pm = PluginManager()
        plugin = _RecordingPlugin()
        pm.register_plugin(plugin)
        bus = EventBus()

        assert pm.attach(bus) == []
        bus.publish(Created.of(Customer(name="A", id=1)))
        assert plugin.recorder.kinds == ["created"]

    def test_broken_plugin_is_a_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        pm = PluginManager()
        good = _RecordingPlugin()
        pm.register_plugin(_BrokenPlugin(), name="broken")
        pm.register_plugin(good, name="good")
        bus = EventBus()

        with caplog.at_level(logging.WARNING, logger="minicrm.plugins.manager"):
            failed = pm.attach(bus)

        assert failed == ["broken"]
        assert len(bus.handlers("customers")) == 1
        assert "broken" in caplog.text

    def test_attach_honours_specname(self) -> None:
        pm = PluginManager()
        plugin = _RenamedHookPlugin()
        pm.register_plugin(plugin)
        bus = EventBus()

        assert pm.attach(bus) == []
        assert bus.handlers("suppliers") == [plugin.recorder]

    def test_attach_calls_function_hooks(self) -> None:
        recorder = Recorder()

        @hookimpl
        def register_event_handlers(bus: EventBus) -> None:
            bus.subscribe("customers", recorder)

        pm = PluginManager()
        pm.register_plugin(SimpleNamespace(register_event_handlers=register_event_handlers), "fn")
        bus = EventBus()

        assert pm.attach(bus) == []
        assert bus.handlers("customers") == [recorder]

    def test_entry_point_classes_are_instantiated(self) -> None:
        pm = PluginManager()

        def _load(group: str, name: str | None = None) -> int:
            assert group == ENTRY_POINT_GROUP
            pm._pm.register(_RecordingPlugin, name="from_entry_point")
            return 1

        with patch.object(pm._pm, "load_setuptools_entrypoints", side_effect=_load):
            names = pm.discover_and_load()

        assert "from_entry_point" in names
        assert all(isinstance(p, _RecordingPlugin) for p in pm.get_plugins())


class TestAuditPlugin:
    def test_subscribes_to_all_entities(self) -> None:
        bus = EventBus()
        plugin = AuditLogPlugin()
        plugin.register_event_handlers(bus)
        assert bus.handlers("customers") == bus.handlers("suppliers") == [plugin.on_event]
        assert bus.handlers(ALL_ENTITIES)

    def test_logs_every_kind(self) -> None:
        calls: list[tuple[str, dict[str, Any]]] = []

        class _Log:
            def bind(self, **kw: Any) -> "_Log":
                return self

            def info(self, event: str, **kw: Any) -> None:
                calls.append((event, kw))

        plugin = AuditLogPlugin()
        plugin._log = _Log()  # type: ignore[assignment]
        old = Customer(name="A", id=1, level="normal")
        new = old.with_changes({"level": "vip"})

        plugin.on_event(Created.of(old))
        plugin.on_event(Updated.of(old, new))
        plugin.on_event(Deleted(name="customers", id=1))

        assert [c[0] for c in calls] == ["entity.created", "entity.updated", "entity.deleted"]
        assert calls[1][1]["fields"] == ["level"]
