"""Synchronous publish/subscribe for entity lifecycle events.

The bus is an explicit object owned by whoever builds the services (see
:class:`~minicrm.services.factory.ServiceFactory`), never module state.
Handlers subscribe per entity type, or to :data:`ALL_ENTITIES`, and are
invoked on the publisher's thread in subscription order.

Nothing is persisted or retried. Events are published only after the
write committed, so a failing handler can never roll a write back.
Failure policy:

- best-effort (default): log the failure, keep calling later handlers,
  report failures to the caller as warnings.
- strict: same, then raise :class:`EventHandlingError` once every
  handler has run.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from minicrm.domain.errors import EventHandlingError, HandlerFailure

if TYPE_CHECKING:
    from minicrm.domain.events import DomainEvent

logger = logging.getLogger(__name__)

ALL_ENTITIES = "*"

Handler = Callable[["DomainEvent"], None]


@dataclass(frozen=True)
class _Subscription:
    entity_name: str
    handler: Handler

    def matches(self, entity_name: str) -> bool:
        return self.entity_name in (entity_name, ALL_ENTITIES)


def handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or type(handler).__name__


class EventBus:
    """Ordered handler registry with synchronous dispatch.

    Parameters:
        strict: Raise :class:`EventHandlingError` when any handler fails.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self._strict = strict
        self._subscriptions: list[_Subscription] = []
        self._lock = threading.Lock()

    @property
    def strict(self) -> bool:
        return self._strict

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def subscribe(self, entity_name: str, handler: Handler) -> Handler:
        """Append *handler* for *entity_name* (or :data:`ALL_ENTITIES`).

        Returns *handler* unchanged, for later :meth:`unsubscribe`.
        """
        with self._lock:
            self._subscriptions.append(_Subscription(entity_name, handler))
        logger.debug("Subscribed %s to %s", handler_name(handler), entity_name)
        return handler

    def unsubscribe(self, entity_name: str, handler: Handler) -> bool:
        """Remove the first matching subscription. Returns whether one was removed."""
        with self._lock:
            for i, sub in enumerate(self._subscriptions):
                if sub.entity_name == entity_name and sub.handler == handler:
                    del self._subscriptions[i]
                    return True
        return False

    def handlers(self, entity_name: str) -> list[Handler]:
        """Handlers that receive events for *entity_name*, in call order."""
        with self._lock:
            return [s.handler for s in self._subscriptions if s.matches(entity_name)]

    def clear(self) -> None:
        with self._lock:
            self._subscriptions.clear()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def publish(self, event: DomainEvent) -> list[HandlerFailure]:
        """Invoke every matching handler in order.

        Returns the failures (empty on full success).

        Raises:
            EventHandlingError: In strict mode, if any handler raised.
        """
        failures: list[HandlerFailure] = []
        for handler in self.handlers(event.entity_name):
            try:
                handler(event)
            except Exception as exc:
                name = handler_name(handler)
                logger.warning(
                    "Handler %s failed on %s %s id=%s",
                    name,
                    event.entity_name,
                    event.kind,
                    event.entity_id,
                    exc_info=True,
                )
                failures.append(HandlerFailure(handler=name, event=event.kind, error=str(exc)))

        if failures and self._strict:
            raise EventHandlingError(failures)
        return failures
