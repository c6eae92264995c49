"""RabbitMQ publisher implementing AsyncPublisher protocol."""

import asyncio
import threading
import time
import uuid
from typing import Optional

import pika
from pika.adapters.blocking_connection import BlockingChannel


class RabbitMQPublisher:
    """
    RabbitMQ publisher implementing AsyncPublisher protocol.

    Topic format: "exchange_name" or "exchange_name:routing_key".
    Without a routing key the message goes to the exchange with an empty
    routing key, which a fanout exchange copies to every bound queue.

    BlockingConnection is not thread-safe, so publishes run one at a time on
    a worker thread. The connection is opened lazily and reopened after the
    broker drops it.
    """

    def __init__(self, parameters: pika.ConnectionParameters):
        self._parameters = parameters
        self._connection: Optional[pika.BlockingConnection] = None
        self._channel: Optional[BlockingChannel] = None
        self._lock = threading.Lock()

    async def publish(self, topic: str, data: bytes, **attributes: str) -> str:
        """
        Publish a message to a RabbitMQ exchange.

        Args:
            topic: Exchange name, or "exchange:routing_key" format
            data: Message data as bytes
            **attributes: Sent as AMQP headers

        Returns:
            Generated message ID
        """
        return await asyncio.to_thread(self._publish, topic, data, attributes)

    def _publish(self, topic: str, data: bytes, attributes: dict[str, str]) -> str:
        # Parse topic as "exchange:routing_key" or just "exchange"
        if ":" in topic:
            exchange, routing_key = topic.split(":", 1)
        else:
            exchange = topic
            routing_key = ""

        message_id = uuid.uuid4().hex
        with self._lock:
            self._ensure_channel().basic_publish(
                exchange=exchange,
                routing_key=routing_key,
                body=data,
                properties=pika.BasicProperties(
                    message_id=message_id,
                    content_type="application/json",
                    headers=dict(attributes) or None,
                    timestamp=int(time.time()),
                    delivery_mode=2,  # Persistent
                ),
            )
        return message_id

    def _ensure_channel(self) -> BlockingChannel:
        if self._connection is None or self._connection.is_closed:
            self._connection = pika.BlockingConnection(self._parameters)
            self._channel = None
        if self._channel is None or self._channel.is_closed:
            self._channel = self._connection.channel()
            # Publisher confirms surface a missing exchange as an exception
            self._channel.confirm_delivery()
        return self._channel

    def close(self) -> None:
        with self._lock:
            if self._connection is not None and self._connection.is_open:
                self._connection.close()
            self._connection = None
            self._channel = None
