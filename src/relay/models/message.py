"""Message model delivered by subscription adapters."""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional


def _noop() -> None:
    return None


@dataclass(frozen=True)
class Message:
    """Delivered message envelope matching the GCP Pub/Sub message structure.

    ``ack`` and ``nack`` delegate to the adapter that delivered the message.
    A delivery is settled at most once; repeated calls are ignored.
    """

    message_id: str
    ack_id: str
    data: bytes
    attributes: dict[str, str] = field(default_factory=dict)
    publish_time: Optional[datetime] = None
    on_ack: Callable[[], None] = field(default=_noop, repr=False, compare=False)
    on_nack: Callable[[], None] = field(default=_noop, repr=False, compare=False)
    _settled: threading.Event = field(
        default_factory=threading.Event, init=False, repr=False, compare=False
    )

    @property
    def acknowledged(self) -> bool:
        """True once the delivery has been acked or nacked."""
        return self._settled.is_set()

    def ack(self) -> None:
        """Acknowledge the message so the broker stops redelivering it."""
        if self._settle():
            self.on_ack()

    def nack(self) -> None:
        """Release the message for immediate redelivery."""
        if self._settle():
            self.on_nack()

    def _settle(self) -> bool:
        if self._settled.is_set():
            return False
        self._settled.set()
        return True
