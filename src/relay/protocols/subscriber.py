"""Subscription protocol definitions."""

import asyncio
from typing import Any, Callable, Protocol, runtime_checkable

from relay.stream import EventKind


@runtime_checkable
class Subscription(Protocol):
    """Streaming handle for one broker subscription."""

    name: str

    @property
    def is_open(self) -> bool:
        """True while the handle is streaming messages."""
        ...

    def open(self, loop: asyncio.AbstractEventLoop) -> None:
        """
        Start streaming, delivering events on ``loop``.

        Args:
            loop: Event loop that listeners run on
        """
        ...

    def close(self) -> None:
        """Stop streaming. Emits a close event to current listeners."""
        ...

    def on(self, kind: EventKind, handler: Callable[[Any], None]) -> None:
        """Register ``handler`` for events of ``kind``."""
        ...

    def remove_listener(self, kind: EventKind, handler: Callable[[Any], None]) -> bool:
        """Deregister exactly the ``(kind, handler)`` pair."""
        ...


@runtime_checkable
class SubscriptionAdmin(Protocol):
    """
    Synchronous protocol for subscription lifecycle calls.

    Every call is a broker round trip. Callers on the event loop run them in a
    worker thread; the shutdown path calls them directly.
    """

    def subscription_exists(self, name: str) -> bool:
        """
        Check whether a subscription exists.

        Args:
            name: Subscription name (not the full resource path)

        Returns:
            True if the broker knows the subscription
        """
        ...

    def create_subscription(self, topic: str, name: str) -> None:
        """
        Create a subscription bound to a topic with default delivery settings.

        Args:
            topic: Topic name the subscription receives copies from
            name: Subscription name

        Raises:
            SubscriptionExistsError: The subscription already exists
        """
        ...

    def delete_subscription(self, name: str) -> None:
        """
        Delete a subscription.

        Args:
            name: Subscription name
        """
        ...

    def subscription(self, name: str) -> Subscription:
        """
        Build an unopened streaming handle for a subscription.

        Args:
            name: Subscription name
        """
        ...
