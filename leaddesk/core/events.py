"""In-process notifications for lead changes.

Views that mutate a lead (delete, status change, a finished call, ...) write
to the server directly and then publish one of the events below so that
other mounted views can patch their own state or drop cached reads.

Design goals:
- Typed payloads: subscribers register for an event class, not a string.
- Scoped: a bus is owned by the composition root and injected where needed.
- Best effort: a failing handler is logged and never blocks the others.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Mapping, Optional, Type, TypeVar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeadEvent:
    lead_id: str
    lead_name: str = ""


@dataclass(frozen=True)
class LeadDeleted(LeadEvent):
    pass


@dataclass(frozen=True)
class LeadStatusUpdated(LeadEvent):
    status: str = ""


@dataclass(frozen=True)
class CallCompleted(LeadEvent):
    duration_seconds: int = 0


@dataclass(frozen=True)
class FollowUpScheduled(LeadEvent):
    follow_up_at: Optional[datetime] = None


@dataclass(frozen=True)
class NotesAdded(LeadEvent):
    notes: str = ""


@dataclass(frozen=True)
class LeadAssigned(LeadEvent):
    assigned_to: str = ""


@dataclass(frozen=True)
class LeadsImported:
    count: int = 0


E = TypeVar("E")
Handler = Callable[[E], Awaitable[None]]


class EventBus:
    """Publish/subscribe channel keyed by event class."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type[E], handler: Handler[E]) -> Callable[[], None]:
        """Register `handler` for `event_type`; returns an unsubscribe callable."""

        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event_type)
            if handlers and handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def handler_count(self, event_type: type) -> int:
        return len(self._handlers.get(event_type, ()))

    async def publish(self, event: object) -> int:
        """Deliver `event` to its subscribers in registration order.

        Returns:
            Number of handlers that completed without raising.
        """

        # Snapshot: handlers may unsubscribe themselves while running.
        handlers = list(self._handlers.get(type(event), ()))
        delivered = 0
        for handler in handlers:
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "events.handler_failed",
                    extra={"event_type": type(event).__name__},
                )
                continue
            delivered += 1
        return delivered


def invalidate_on(
    bus: EventBus,
    store,
    mapping: Mapping[type, Iterable[str]],
) -> Callable[[], None]:
    """Mark cache keys stale whenever one of the mapped events is published.

    Cached data stays visible; the next read of a marked key revalidates it
    in the background. Returns a callable that removes every subscription.
    """

    unsubscribers: list[Callable[[], None]] = []
    for event_type, keys in mapping.items():
        keys = tuple(keys)

        async def _invalidate(event: object, _keys: tuple[str, ...] = keys) -> None:
            for key in _keys:
                if store.mark_stale(key):
                    logger.debug(
                        "events.cache_invalidated",
                        extra={"key": key, "event_type": type(event).__name__},
                    )

        unsubscribers.append(bus.subscribe(event_type, _invalidate))

    def unsubscribe_all() -> None:
        for unsubscribe in unsubscribers:
            unsubscribe()

    return unsubscribe_all


__all__ = [
    "CallCompleted",
    "EventBus",
    "FollowUpScheduled",
    "LeadAssigned",
    "LeadDeleted",
    "LeadEvent",
    "LeadStatusUpdated",
    "LeadsImported",
    "NotesAdded",
    "invalidate_on",
]
