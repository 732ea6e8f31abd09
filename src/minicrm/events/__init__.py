"""In-process lifecycle event bus."""

from minicrm.events.bus import ALL_ENTITIES, EventBus

__all__ = ["ALL_ENTITIES", "EventBus"]
