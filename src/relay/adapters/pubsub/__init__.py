"""Google Cloud Pub/Sub adapter for relay broker protocols."""

from relay.adapters.pubsub.publisher import PubSubPublisher
from relay.adapters.pubsub.subscription import PubSubSubscription, PubSubSubscriptionAdmin

__all__ = ["PubSubPublisher", "PubSubSubscription", "PubSubSubscriptionAdmin"]
