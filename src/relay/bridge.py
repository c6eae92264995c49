"""Request/response bridge owned by the HTTP server."""

import asyncio
import contextlib
import logging
from typing import Any, AsyncContextManager

from relay.config import Settings
from relay.consumer.response_waiter import ResponseWaiter
from relay.forwarder import RequestForwarder
from relay.models.envelope import RequestEnvelope
from relay.protocols.publisher import AsyncPublisher
from relay.protocols.subscriber import Subscription, SubscriptionAdmin
from relay.provisioner import SubscriptionProvisioner
from relay.shutdown import CleanupOutcome, ShutdownCoordinator, ShutdownTrigger

logger = logging.getLogger(__name__)


class Bridge:
    """
    Context object scoped to the server's lifetime.

    Wires provisioning, waiting, forwarding and shutdown for the one
    subscription this process owns. Waits are serialized per subscription
    unless ``serialize_waits`` is off, because a response carries no
    correlation token: the next delivered message answers whichever wait
    registered first.
    """

    def __init__(
        self,
        settings: Settings,
        admin: SubscriptionAdmin,
        publisher: AsyncPublisher,
    ):
        self.settings = settings
        self.provisioner = SubscriptionProvisioner(admin)
        self.waiter = ResponseWaiter()
        self.forwarder = RequestForwarder(publisher, settings.backend_topic)
        self.coordinator = ShutdownCoordinator(
            admin,
            settings.subscription_name,
            provisioner=self.provisioner,
            budget=settings.shutdown_budget,
        )
        self._wait_lock = asyncio.Lock()

    @property
    def subscription_name(self) -> str:
        return self.settings.subscription_name

    async def ensure_subscription(self) -> Subscription:
        return await self.provisioner.ensure(
            self.settings.response_topic, self.settings.subscription_name
        )

    async def wait_for_response(self) -> Any:
        """Wait-only variant: return the next message delivered on the subscription."""
        async with self._serialized():
            subscription = await self.ensure_subscription()
            future = self.waiter.await_one(subscription)
            try:
                return await self.waiter.result(future, self.settings.response_timeout)
            finally:
                _discard(future)

    async def relay(self, envelope: RequestEnvelope) -> Any:
        """
        Forward variant: publish ``envelope`` and return the reply.

        The wait is registered before publishing so a fast reply is not
        delivered ahead of its listener. A failed publish cancels the wait.
        """
        async with self._serialized():
            subscription = await self.ensure_subscription()
            future = self.waiter.await_one(subscription)
            try:
                await self.forwarder.forward(envelope)
                return await self.waiter.result(future, self.settings.response_timeout)
            finally:
                _discard(future)

    def shutdown(self, trigger: ShutdownTrigger = ShutdownTrigger.GRACEFUL) -> CleanupOutcome:
        """Delete the subscription within the budget, then release the publisher."""
        outcome = self.coordinator.handle(trigger)
        try:
            self.forwarder.publisher.close()
        except Exception:
            logger.exception("Closing publisher failed")
        return outcome

    def is_ready(self) -> bool:
        subscription = self.provisioner.subscription
        return subscription is not None and subscription.is_open

    def _serialized(self) -> AsyncContextManager:
        if self.settings.serialize_waits:
            return self._wait_lock
        return contextlib.nullcontext()


def _discard(future: asyncio.Future) -> None:
    # An unsettled wait left registered would claim the next message
    if not future.done():
        future.cancel()
