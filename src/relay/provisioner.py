"""Ephemeral response subscription provisioning."""

import asyncio
import logging
from typing import Optional

from relay.errors import ProvisionError, SubscriptionExistsError
from relay.protocols.subscriber import Subscription, SubscriptionAdmin

logger = logging.getLogger(__name__)


class SubscriptionProvisioner:
    """
    Ensures the process-owned subscription exists and is streaming.

    The open handle is cached and reused for the lifetime of the process.
    Calls are serialized, so concurrent callers perform at most one create.
    """

    def __init__(self, admin: SubscriptionAdmin):
        self.admin = admin
        self._subscription: Optional[Subscription] = None
        self._lock = asyncio.Lock()

    @property
    def subscription(self) -> Optional[Subscription]:
        return self._subscription

    async def ensure(self, topic_name: str, subscription_name: str) -> Subscription:
        """
        Return an open handle for ``subscription_name``, creating it if needed.

        Args:
            topic_name: Topic the subscription is bound to
            subscription_name: Process-unique subscription name

        Raises:
            ProvisionError: Existence check, create or open failed
        """
        async with self._lock:
            cached = self._subscription
            if cached is not None and cached.name == subscription_name and cached.is_open:
                return cached

            try:
                exists = await asyncio.to_thread(self.admin.subscription_exists, subscription_name)
            except Exception as exc:
                raise ProvisionError(
                    f"Could not check subscription {subscription_name}: {exc}",
                    subscription=subscription_name,
                    topic=topic_name,
                ) from exc

            if not exists:
                logger.info(
                    "Creating unique fan-out subscription %s on topic %s",
                    subscription_name,
                    topic_name,
                )
                try:
                    await asyncio.to_thread(
                        self.admin.create_subscription, topic_name, subscription_name
                    )
                except SubscriptionExistsError:
                    logger.info("Subscription %s was created concurrently", subscription_name)
                except Exception as exc:
                    raise ProvisionError(
                        f"Could not create subscription {subscription_name}: {exc}",
                        subscription=subscription_name,
                        topic=topic_name,
                    ) from exc

            if cached is not None and cached.name == subscription_name:
                subscription = cached
            else:
                subscription = self.admin.subscription(subscription_name)

            if not subscription.is_open:
                loop = asyncio.get_running_loop()
                try:
                    # Adapters block until their stream is consuming
                    await asyncio.to_thread(subscription.open, loop)
                except Exception as exc:
                    raise ProvisionError(
                        f"Could not open subscription {subscription_name}: {exc}",
                        subscription=subscription_name,
                        topic=topic_name,
                    ) from exc
                logger.info("Streaming from subscription %s", subscription_name)

            self._subscription = subscription
            return subscription

    def close(self) -> None:
        """Stop streaming and forget the cached handle."""
        subscription, self._subscription = self._subscription, None
        if subscription is not None and subscription.is_open:
            logger.info("Closing subscription stream %s", subscription.name)
            subscription.close()
