"""Pluggy hook specifications for minicrm.

Plugins never receive events through pluggy directly: pluggy calls hook
implementations newest-first, while the event bus guarantees
subscription order. Instead a plugin gets one setup-time call to
subscribe its handlers on the bus.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from minicrm.events.bus import EventBus

hookspec = pluggy.HookspecMarker("minicrm")
hookimpl = pluggy.HookimplMarker("minicrm")


class MinicrmHookSpec:
    """Hook specifications for the minicrm plugin system."""

    @hookspec
    def register_event_handlers(self, bus: EventBus) -> None:
        """Subscribe lifecycle handlers on *bus*."""
