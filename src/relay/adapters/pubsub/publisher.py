"""Pub/Sub publisher implementing AsyncPublisher protocol."""

import asyncio

from google.cloud import pubsub_v1


class PubSubPublisher:
    """
    Pub/Sub publisher implementing AsyncPublisher protocol.

    The client batches publishes on its own threads; the returned future is
    awaited on a worker thread with ``timeout`` seconds.
    """

    def __init__(
        self,
        publisher: pubsub_v1.PublisherClient,
        project_id: str,
        timeout: float = 30.0,
    ):
        self._publisher = publisher
        self._project_id = project_id
        self._timeout = timeout

    async def publish(self, topic: str, data: bytes, **attributes: str) -> str:
        """
        Publish a message to a Pub/Sub topic.

        Args:
            topic: Topic name (not the full path)
            data: Message data as bytes
            **attributes: Pub/Sub message attributes

        Returns:
            Message ID assigned by Pub/Sub
        """
        topic_path = self._publisher.topic_path(self._project_id, topic)
        future = self._publisher.publish(topic_path, data, **attributes)
        return await asyncio.to_thread(future.result, self._timeout)

    def close(self) -> None:
        self._publisher.stop()
