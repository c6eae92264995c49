"""Listener registry shared by streaming subscription adapters."""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class EventKind(str, Enum):
    """Events a subscription stream emits."""

    MESSAGE = "message"
    ERROR = "error"
    DEBUG = "debug"
    CLOSE = "close"


class ListenerRegistry:
    """
    Event registry for one subscription stream.

    Listeners are tracked as exact ``(EventKind, handler)`` pairs and always
    run on the asyncio loop bound by ``bind_loop``. Broker SDK threads hand
    events over with ``dispatch``.

    Delivery rules:
    - A message goes to exactly one listener, the oldest registered.
    - Error, debug and close events go to every listener registered when the
      event is emitted.
    """

    def __init__(self) -> None:
        self._listeners: dict[EventKind, list[Listener]] = {kind: [] for kind in EventKind}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def on(self, kind: EventKind, handler: Listener) -> None:
        self._listeners[EventKind(kind)].append(handler)

    def remove_listener(self, kind: EventKind, handler: Listener) -> bool:
        """Remove one registration of ``handler`` for ``kind``.

        Returns False when the pair was not registered.
        """
        listeners = self._listeners[EventKind(kind)]
        for index, registered in enumerate(listeners):
            if registered == handler:
                del listeners[index]
                return True
        return False

    def listener_count(self, kind: EventKind) -> int:
        return len(self._listeners[EventKind(kind)])

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def dispatch(self, kind: EventKind, payload: Any = None) -> None:
        """Thread-safe hand-off of a broker event onto the bound loop."""
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("Dropping %s event: no running loop bound", kind.value)
            return
        loop.call_soon_threadsafe(self.emit, kind, payload)

    def emit(self, kind: EventKind, payload: Any = None) -> bool:
        """Deliver an event to listeners. Must run on the bound loop.

        Returns True when at least one listener received the event.
        """
        kind = EventKind(kind)
        if kind is EventKind.MESSAGE:
            listeners = self._listeners[kind]
            if not listeners:
                logger.debug("Message delivered with no waiting listener; left unacknowledged")
                return False
            self._call(kind, listeners[0], payload)
            return True

        snapshot = list(self._listeners[kind])
        for handler in snapshot:
            self._call(kind, handler, payload)
        return bool(snapshot)

    @staticmethod
    def _call(kind: EventKind, handler: Listener, payload: Any) -> None:
        try:
            handler(payload)
        except Exception:
            logger.exception("Listener for %s event raised", kind.value)
