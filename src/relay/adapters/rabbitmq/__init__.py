"""RabbitMQ adapter for relay broker protocols."""

from relay.adapters.rabbitmq.publisher import RabbitMQPublisher
from relay.adapters.rabbitmq.subscription import RabbitMQSubscription, RabbitMQSubscriptionAdmin

__all__ = ["RabbitMQPublisher", "RabbitMQSubscription", "RabbitMQSubscriptionAdmin"]
