"""Publishes inbound request envelopes to the backend topic."""

import logging

from relay.errors import PublishError
from relay.models.envelope import RequestEnvelope
from relay.protocols.publisher import AsyncPublisher

logger = logging.getLogger(__name__)


class RequestForwarder:
    """Single-attempt publisher of request envelopes. No retry."""

    def __init__(self, publisher: AsyncPublisher, topic: str):
        self.publisher = publisher
        self.topic = topic

    async def forward(self, envelope: RequestEnvelope) -> str:
        """
        Publish ``envelope`` to the backend topic.

        Returns:
            Broker message ID

        Raises:
            PublishError: The publish failed
        """
        try:
            message_id = await self.publisher.publish(
                self.topic, envelope.to_bytes(), **envelope.attributes()
            )
        except Exception as exc:
            logger.error(
                "Publishing %s %s to %s failed: %s", envelope.method, envelope.path, self.topic, exc
            )
            raise PublishError(
                f"Could not publish request to {self.topic}: {exc}", topic=self.topic
            ) from exc

        logger.info(
            "Forwarded %s %s to %s as %s", envelope.method, envelope.path, self.topic, message_id
        )
        return message_id
