"""Built-in audit plugin: one structured log line per lifecycle event."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from minicrm.domain.events import Created, Deleted, DomainEvent, Updated
from minicrm.events.bus import ALL_ENTITIES
from minicrm.plugins.hookspecs import hookimpl

if TYPE_CHECKING:
    from minicrm.events.bus import EventBus


class AuditLogPlugin:
    """Logs every create/update/delete through ``structlog``."""

    def __init__(self, logger_name: str = "minicrm.audit") -> None:
        self._log = structlog.get_logger(logger_name)

    @hookimpl
    def register_event_handlers(self, bus: EventBus) -> None:
        bus.subscribe(ALL_ENTITIES, self.on_event)

    def on_event(self, event: DomainEvent) -> None:
        log = self._log.bind(entity=event.entity_name, id=event.entity_id)
        match event:
            case Created(entity=entity):
                log.info("entity.created", label=entity.display_label())
            case Updated():
                log.info("entity.updated", fields=event.changed_fields())
            case Deleted():
                log.info("entity.deleted")
