"""In-process change notification.

The persistence substrate has no change notification of its own, so every
surface that shows stored state (chat list, open chat, usage indicator)
subscribes here and re-reads what it needs when a topic fires.
"""

import logging
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class Topic(Enum):
    """Kinds of change listeners can subscribe to."""

    CHATS = "chats"
    NOTES = "notes"
    TOKENS = "tokens"
    AUTH = "auth"


class EventBus:
    """Synchronous, payload-free publish/subscribe hub.

    One bus is created per process and injected into the store, the ledger,
    the auth state and the orchestrator. Listeners are called in
    registration order. ``close()`` tears the bus down; publishing after
    that is a no-op.
    """

    def __init__(self) -> None:
        self._listeners: dict[Topic, list[Listener]] = {topic: [] for topic in Topic}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, topic: Topic, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a function that removes it.

        The returned function can be called any number of times; it removes
        this registration only, even when the same listener was subscribed
        more than once.
        """
        if self._closed:
            raise RuntimeError("EventBus is closed")
        self._listeners[topic].append(listener)
        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            if removed:
                return
            removed = True
            self.unsubscribe(topic, listener)

        return unsubscribe

    def unsubscribe(self, topic: Topic, listener: Listener) -> None:
        """Remove a listener by identity. Unknown listeners are ignored."""
        listeners = self._listeners.get(topic, [])
        for index, registered in enumerate(listeners):
            if registered is listener:
                del listeners[index]
                return

    def listener_count(self, topic: Topic) -> int:
        return len(self._listeners.get(topic, []))

    def publish(self, topic: Topic) -> None:
        """Call every listener of ``topic``.

        Delivery works on a snapshot, so a listener that unsubscribes itself
        (or another listener) does not cause anyone to be skipped. A listener
        that raises is logged and the rest still run.
        """
        if self._closed:
            return
        for listener in list(self._listeners[topic]):
            try:
                listener()
            except Exception:
                logger.exception("Listener for %s failed", topic.value)

    def close(self) -> None:
        """Drop all listeners and stop delivering."""
        for listeners in self._listeners.values():
            listeners.clear()
        self._closed = True
