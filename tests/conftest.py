"""Shared fixtures: in-process subscription stream and message factory."""

from typing import Callable
from unittest.mock import Mock

import pytest

from fakes import FakeSubscription
from relay.models.message import Message


@pytest.fixture
def subscription() -> FakeSubscription:
    return FakeSubscription()


@pytest.fixture
def make_message() -> Callable[..., Message]:
    """Factory for messages with mock ack/nack hooks."""
    counter = {"n": 0}

    def factory(data: bytes = b'{"ok": true}', **attributes: str) -> Message:
        counter["n"] += 1
        return Message(
            message_id=f"msg-{counter['n']}",
            ack_id=f"ack-{counter['n']}",
            data=data,
            attributes=attributes,
            on_ack=Mock(name="on_ack"),
            on_nack=Mock(name="on_nack"),
        )

    return factory


@pytest.fixture
def admin(subscription) -> Mock:
    """SubscriptionAdmin double handing out the fake subscription."""
    admin = Mock()
    admin.subscription_exists.return_value = False
    admin.subscription.return_value = subscription
    return admin
