"""RabbitMQ subscription admin and streaming handle."""

import asyncio
import functools
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

import pika
from pika.adapters.blocking_connection import BlockingChannel
from pika.exceptions import AMQPError, ChannelClosedByBroker

from relay.models.message import Message
from relay.stream import EventKind, ListenerRegistry

logger = logging.getLogger(__name__)

NOT_FOUND = 404
OPEN_TIMEOUT_SECONDS = 10.0
CLOSE_TIMEOUT_SECONDS = 5.0


class RabbitMQSubscriptionAdmin:
    """
    RabbitMQ admin implementing SubscriptionAdmin protocol.

    A topic is a fanout exchange owned by the broker; a subscription is a
    durable queue bound to it. Every call opens a short-lived connection, so
    calls are safe from any thread, including the shutdown path.
    """

    def __init__(self, parameters: pika.ConnectionParameters):
        self._parameters = parameters

    @contextmanager
    def _channel(self) -> Iterator[BlockingChannel]:
        connection = pika.BlockingConnection(self._parameters)
        try:
            yield connection.channel()
        finally:
            if connection.is_open:
                connection.close()

    def subscription_exists(self, name: str) -> bool:
        with self._channel() as channel:
            try:
                channel.queue_declare(queue=name, passive=True)
            except ChannelClosedByBroker as exc:
                if exc.reply_code == NOT_FOUND:
                    return False
                raise
        return True

    def create_subscription(self, topic: str, name: str) -> None:
        """Bind a new durable queue to the topic exchange.

        queue_declare is idempotent in RabbitMQ, so a concurrent create never
        reports "already exists". The exchange must already exist.
        """
        with self._channel() as channel:
            channel.exchange_declare(exchange=topic, passive=True)
            channel.queue_declare(queue=name, durable=True)
            channel.queue_bind(queue=name, exchange=topic)

    def delete_subscription(self, name: str) -> None:
        with self._channel() as channel:
            channel.queue_delete(queue=name)

    def subscription(self, name: str) -> "RabbitMQSubscription":
        return RabbitMQSubscription(self._parameters, name)


class RabbitMQSubscription(ListenerRegistry):
    """
    Streams a RabbitMQ queue on a dedicated consumer thread.

    The thread owns its connection. Acks and nacks are marshalled back onto
    it with add_callback_threadsafe; the delivery_tag doubles as the ack_id.
    """

    def __init__(self, parameters: pika.ConnectionParameters, name: str):
        super().__init__()
        self.name = name
        self._parameters = parameters
        self._connection: Optional[pika.BlockingConnection] = None
        self._channel: Optional[BlockingChannel] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._startup_error: Optional[BaseException] = None
        self._closing = False

    @property
    def is_open(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def open(self, loop: asyncio.AbstractEventLoop) -> None:
        if self.is_open:
            return
        self.bind_loop(loop)
        self._closing = False
        self._startup_error = None
        self._ready.clear()
        self._thread = threading.Thread(
            target=self._run, name=f"rabbitmq-{self.name}", daemon=True
        )
        self._thread.start()
        if not self._ready.wait(timeout=OPEN_TIMEOUT_SECONDS):
            raise TimeoutError(f"Consumer for {self.name} did not start")
        if self._startup_error is not None:
            raise self._startup_error

    def close(self) -> None:
        thread, connection, channel = self._thread, self._connection, self._channel
        if thread is None or not thread.is_alive() or connection is None or channel is None:
            return
        self._closing = True
        connection.add_callback_threadsafe(channel.stop_consuming)
        thread.join(timeout=CLOSE_TIMEOUT_SECONDS)

    def _run(self) -> None:
        try:
            self._connection = pika.BlockingConnection(self._parameters)
            self._channel = self._connection.channel()
            self._channel.basic_consume(
                queue=self.name,
                on_message_callback=self._on_delivery,
                auto_ack=False,
            )
        except Exception as exc:
            self._startup_error = exc
            self._ready.set()
            return

        self._ready.set()
        self.dispatch(EventKind.DEBUG, f"consuming from queue {self.name}")
        try:
            self._channel.start_consuming()
        except Exception as exc:
            if not self._closing:
                logger.error("Consumer for %s failed: %s", self.name, exc)
                self.dispatch(EventKind.ERROR, exc)
        finally:
            self._disconnect()
            self.dispatch(EventKind.CLOSE, "stopped" if self._closing else "connection lost")

    def _disconnect(self) -> None:
        connection = self._connection
        if connection is not None and connection.is_open:
            try:
                connection.close()
            except AMQPError as exc:
                logger.debug("Closing connection for %s: %s", self.name, exc)

    def _on_delivery(self, channel, method, properties, body: bytes) -> None:
        delivery_tag = method.delivery_tag
        publish_time = None
        if properties.timestamp:
            publish_time = datetime.fromtimestamp(properties.timestamp, tz=timezone.utc)

        message = Message(
            message_id=properties.message_id or str(delivery_tag),
            ack_id=str(delivery_tag),
            data=body,
            attributes={key: str(value) for key, value in (properties.headers or {}).items()},
            publish_time=publish_time,
            on_ack=functools.partial(self._settle, channel.basic_ack, delivery_tag),
            on_nack=functools.partial(self._settle, channel.basic_nack, delivery_tag),
        )
        self.dispatch(EventKind.MESSAGE, message)

    def _settle(self, settle: Callable[..., None], delivery_tag: int) -> None:
        connection = self._connection
        if connection is None or connection.is_closed:
            logger.warning(
                "Cannot settle delivery %s on %s: connection closed, broker will redeliver",
                delivery_tag,
                self.name,
            )
            return
        connection.add_callback_threadsafe(functools.partial(settle, delivery_tag=delivery_tag))
