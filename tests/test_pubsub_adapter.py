"""Tests for the Google Cloud Pub/Sub adapter using mock clients."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from google.api_core.exceptions import AlreadyExists, NotFound

from fakes import wait_until
from relay.adapters.pubsub import PubSubPublisher, PubSubSubscription, PubSubSubscriptionAdmin
from relay.errors import SubscriptionExistsError
from relay.stream import EventKind


@pytest.fixture
def subscriber():
    """Create a mock SubscriberClient with real-looking resource paths."""
    subscriber = Mock()
    subscriber.subscription_path.side_effect = lambda project, name: (
        f"projects/{project}/subscriptions/{name}"
    )
    subscriber.topic_path.side_effect = lambda project, name: f"projects/{project}/topics/{name}"
    return subscriber


@pytest.fixture
def pull_future():
    """Create a mock StreamingPullFuture that is still running."""
    future = Mock()
    future.done.return_value = False
    future.cancelled.return_value = False
    future.exception.return_value = None
    return future


class TestPubSubSubscriptionAdmin:
    """Test PubSubSubscriptionAdmin class."""

    @pytest.fixture
    def admin(self, subscriber):
        return PubSubSubscriptionAdmin(subscriber, "demo")

    def test_subscription_exists(self, admin, subscriber):
        """subscription_exists() should look the subscription up by full path."""
        assert admin.subscription_exists("resp-pod1") is True
        subscriber.get_subscription.assert_called_once_with(
            request={"subscription": "projects/demo/subscriptions/resp-pod1"}
        )

    def test_subscription_missing(self, admin, subscriber):
        """NotFound should be reported as a missing subscription."""
        subscriber.get_subscription.side_effect = NotFound("no such subscription")

        assert admin.subscription_exists("resp-pod1") is False

    def test_create_subscription_binds_topic(self, admin, subscriber):
        """create_subscription() should bind the subscription to the topic path."""
        admin.create_subscription("bff-response", "resp-pod1")

        subscriber.create_subscription.assert_called_once_with(
            request={
                "name": "projects/demo/subscriptions/resp-pod1",
                "topic": "projects/demo/topics/bff-response",
            }
        )

    def test_create_existing_raises_subscription_exists(self, admin, subscriber):
        """AlreadyExists should surface as SubscriptionExistsError."""
        subscriber.create_subscription.side_effect = AlreadyExists("exists")

        with pytest.raises(SubscriptionExistsError):
            admin.create_subscription("bff-response", "resp-pod1")

    def test_delete_subscription(self, admin, subscriber):
        """delete_subscription() should delete by full path."""
        admin.delete_subscription("resp-pod1")

        subscriber.delete_subscription.assert_called_once_with(
            request={"subscription": "projects/demo/subscriptions/resp-pod1"}
        )

    def test_subscription_handle(self, admin):
        """subscription() should return a closed handle for the named subscription."""
        handle = admin.subscription("resp-pod1")

        assert isinstance(handle, PubSubSubscription)
        assert handle.name == "resp-pod1"
        assert handle.path == "projects/demo/subscriptions/resp-pod1"
        assert not handle.is_open


class TestPubSubSubscription:
    """Test PubSubSubscription class."""

    @pytest.fixture
    def handle(self, subscriber, pull_future):
        subscriber.subscribe.return_value = pull_future
        return PubSubSubscription(subscriber, "resp-pod1", "projects/demo/subscriptions/resp-pod1")

    @pytest.mark.asyncio
    async def test_open_starts_streaming_pull(self, handle, subscriber, pull_future):
        """open() should start a streaming pull and report open."""
        handle.open(asyncio.get_running_loop())

        assert handle.is_open
        assert subscriber.subscribe.call_args[0][0] == "projects/demo/subscriptions/resp-pod1"
        pull_future.add_done_callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_received_message_is_dispatched(self, handle, subscriber):
        """A received message should reach a listener on the loop with working ack."""
        handle.open(asyncio.get_running_loop())
        callback = subscriber.subscribe.call_args[1]["callback"]
        received = Mock(
            message_id="m-1",
            ack_id="a-1",
            data=b'{"ok": true}',
            attributes={"source": "backend"},
            publish_time=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        seen = []
        handle.on(EventKind.MESSAGE, seen.append)

        callback(received)
        await wait_until(lambda: bool(seen))

        message = seen[0]
        assert message.message_id == "m-1"
        assert message.data == b'{"ok": true}'
        assert message.attributes == {"source": "backend"}
        message.ack()
        received.ack.assert_called_once()

    @pytest.mark.asyncio
    async def test_failed_stream_emits_error_then_close(self, handle, pull_future):
        """A streaming pull that fails should emit an error event followed by close."""
        handle.open(asyncio.get_running_loop())
        on_done = pull_future.add_done_callback.call_args[0][0]
        events = []
        handle.on(EventKind.ERROR, lambda error: events.append(("error", error)))
        handle.on(EventKind.CLOSE, lambda reason: events.append(("close", reason)))
        failure = RuntimeError("stream reset")
        pull_future.exception.return_value = failure

        on_done(pull_future)
        await wait_until(lambda: len(events) == 2)

        assert events == [("error", failure), ("close", "stream ended")]

    @pytest.mark.asyncio
    async def test_close_cancels_streaming_pull(self, handle, pull_future):
        """close() should cancel the pull and wait for it to finish."""
        handle.open(asyncio.get_running_loop())

        handle.close()

        pull_future.cancel.assert_called_once()
        pull_future.result.assert_called_once_with(timeout=5.0)

    def test_close_before_open_is_noop(self, handle, pull_future):
        """close() on a handle that never opened should do nothing."""
        handle.close()

        pull_future.cancel.assert_not_called()


class TestPubSubPublisher:
    """Test PubSubPublisher class."""

    @pytest.mark.asyncio
    async def test_publish_returns_message_id(self):
        """publish() should publish to the topic path and return the message ID."""
        client = Mock()
        client.topic_path.return_value = "projects/demo/topics/bff-request"
        client.publish.return_value.result.return_value = "server-id-1"
        publisher = PubSubPublisher(client, "demo", timeout=3.0)

        message_id = await publisher.publish("bff-request", b"{}", method="GET", path="/")

        assert message_id == "server-id-1"
        client.topic_path.assert_called_once_with("demo", "bff-request")
        client.publish.assert_called_once_with(
            "projects/demo/topics/bff-request", b"{}", method="GET", path="/"
        )
        client.publish.return_value.result.assert_called_once_with(3.0)

    def test_close_stops_client(self):
        """close() should stop the client and flush pending batches."""
        client = Mock()

        PubSubPublisher(client, "demo").close()

        client.stop.assert_called_once()
