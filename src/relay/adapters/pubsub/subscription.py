"""Google Cloud Pub/Sub subscription admin and streaming handle."""

import asyncio
import logging
from typing import Optional

from google.api_core.exceptions import AlreadyExists, NotFound
from google.cloud import pubsub_v1
from google.cloud.pubsub_v1.subscriber.futures import StreamingPullFuture
from google.cloud.pubsub_v1.subscriber.message import Message as ReceivedMessage

from relay.errors import SubscriptionExistsError
from relay.models.message import Message
from relay.stream import EventKind, ListenerRegistry

logger = logging.getLogger(__name__)

CLOSE_TIMEOUT_SECONDS = 5.0


class PubSubSubscriptionAdmin:
    """Pub/Sub admin implementing SubscriptionAdmin protocol."""

    def __init__(
        self,
        subscriber: pubsub_v1.SubscriberClient,
        project_id: str,
        flow_control: Optional[pubsub_v1.types.FlowControl] = None,
    ):
        self._subscriber = subscriber
        self._project_id = project_id
        self._flow_control = flow_control

    def _path(self, name: str) -> str:
        return self._subscriber.subscription_path(self._project_id, name)

    def subscription_exists(self, name: str) -> bool:
        try:
            self._subscriber.get_subscription(request={"subscription": self._path(name)})
        except NotFound:
            return False
        return True

    def create_subscription(self, topic: str, name: str) -> None:
        try:
            self._subscriber.create_subscription(
                request={
                    "name": self._path(name),
                    "topic": self._subscriber.topic_path(self._project_id, topic),
                }
            )
        except AlreadyExists as exc:
            raise SubscriptionExistsError(
                f"Subscription {name} already exists", subscription=name, topic=topic
            ) from exc

    def delete_subscription(self, name: str) -> None:
        self._subscriber.delete_subscription(request={"subscription": self._path(name)})

    def subscription(self, name: str) -> "PubSubSubscription":
        return PubSubSubscription(self._subscriber, name, self._path(name), self._flow_control)


class PubSubSubscription(ListenerRegistry):
    """
    Streaming-pull handle for one Pub/Sub subscription.

    The client library invokes the message callback on its own thread pool;
    events are handed to the asyncio loop with ``dispatch``. When the
    streaming pull future finishes, an error event is emitted if it failed,
    followed by a close event.
    """

    def __init__(
        self,
        subscriber: pubsub_v1.SubscriberClient,
        name: str,
        path: str,
        flow_control: Optional[pubsub_v1.types.FlowControl] = None,
    ):
        super().__init__()
        self.name = name
        self.path = path
        self._subscriber = subscriber
        self._flow_control = flow_control
        self._future: Optional[StreamingPullFuture] = None
        self._closing = False

    @property
    def is_open(self) -> bool:
        return self._future is not None and not self._future.done()

    def open(self, loop: asyncio.AbstractEventLoop) -> None:
        if self.is_open:
            return
        self.bind_loop(loop)
        self._closing = False
        kwargs = {"flow_control": self._flow_control} if self._flow_control is not None else {}
        self._future = self._subscriber.subscribe(self.path, callback=self._on_message, **kwargs)
        self._future.add_done_callback(self._on_stream_done)
        self.dispatch(EventKind.DEBUG, f"streaming pull opened on {self.path}")

    def close(self) -> None:
        future = self._future
        if future is None or future.done():
            return
        self._closing = True
        future.cancel()
        try:
            future.result(timeout=CLOSE_TIMEOUT_SECONDS)
        except Exception as exc:
            logger.debug("Streaming pull on %s ended with %r", self.name, exc)

    def _on_message(self, received: ReceivedMessage) -> None:
        message = Message(
            message_id=received.message_id,
            ack_id=received.ack_id,
            data=received.data,
            attributes=dict(received.attributes),
            publish_time=received.publish_time,
            on_ack=received.ack,
            on_nack=received.nack,
        )
        self.dispatch(EventKind.MESSAGE, message)

    def _on_stream_done(self, future: StreamingPullFuture) -> None:
        error = None if future.cancelled() else future.exception()
        if error is not None:
            logger.error("Streaming pull on %s failed: %s", self.name, error)
            self.dispatch(EventKind.ERROR, error)
        self.dispatch(EventKind.CLOSE, "cancelled" if self._closing else "stream ended")
