"""Publisher protocol definitions."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class AsyncPublisher(Protocol):
    """Async protocol for publishing messages to topics."""

    async def publish(self, topic: str, data: bytes, **attributes: str) -> str:
        """
        Publish a message to a topic asynchronously.

        Args:
            topic: Topic name (adapters expand it to a full resource path)
            data: Message data as bytes
            **attributes: Message attributes

        Returns:
            Message ID assigned by the broker
        """
        ...

    def close(self) -> None:
        """Flush pending publishes and release the connection."""
        ...
