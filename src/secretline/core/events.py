"""State-change notifications for observers and indexers.

Each successful mutation publishes exactly one event carrying the minimum
identifying data. Delivery is synchronous and happens after the mutation
has committed, so a failing subscriber can never undo or half-apply it.

Usage:
    bus = EventBus()
    bus.subscribe(LineJoined, lambda event: print(event.identity))
    coordinator = LineCoordinator(engine, events=bus)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineCreated:
    line_id: int
    creator: str
    name: str


@dataclass(frozen=True)
class LineJoined:
    line_id: int
    identity: str


@dataclass(frozen=True)
class MessageSent:
    line_id: int
    message_id: int
    sender: str


LineEvent = Union[LineCreated, LineJoined, MessageSent]

Subscriber = Callable[[Any], None]


def event_to_dict(event: LineEvent) -> dict[str, Any]:
    """Serialize an event with its type name."""
    return {"event": type(event).__name__, **asdict(event)}


class EventBus:
    """Synchronous publish/subscribe hub with an append-only history.

    Subscribers registered for a specific event class only see that class;
    subscribers registered with ``subscribe_all`` see every event.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Subscriber]] = {}
        self._wildcard: list[Subscriber] = []
        self._history: list[LineEvent] = []
        self._lock = threading.Lock()

    def subscribe(self, event_type: type, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(callback)

    def subscribe_all(self, callback: Subscriber) -> None:
        with self._lock:
            self._wildcard.append(callback)

    def unsubscribe(self, event_type: type | None, callback: Subscriber) -> bool:
        """Remove a subscriber. Pass None as event_type for wildcard subscribers.

        Returns:
            True if the callback was registered.
        """
        with self._lock:
            targets = self._wildcard if event_type is None else self._subscribers.get(event_type, [])
            if callback in targets:
                targets.remove(callback)
                return True
            return False

    def publish(self, event: LineEvent) -> None:
        """Record the event and deliver it to every matching subscriber."""
        with self._lock:
            self._history.append(event)
            callbacks = list(self._subscribers.get(type(event), [])) + list(self._wildcard)

        logger.debug("Publishing %s", event)
        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception("Subscriber %r failed handling %s", callback, type(event).__name__)

    def history(self, event_type: type | None = None) -> list[LineEvent]:
        """Events published so far, oldest first, optionally filtered by type."""
        with self._lock:
            if event_type is None:
                return list(self._history)
            return [e for e in self._history if isinstance(e, event_type)]
