"""Entry point: wire the broker adapter, install shutdown hooks, serve HTTP."""

import logging

import pika
import uvicorn
from google.cloud import pubsub_v1

from relay.adapters.pubsub import PubSubPublisher, PubSubSubscriptionAdmin
from relay.adapters.rabbitmq import RabbitMQPublisher, RabbitMQSubscriptionAdmin
from relay.bridge import Bridge
from relay.config import Settings
from relay.http.app import create_app

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_bridge(settings: Settings) -> Bridge:
    """Build the Bridge for the configured broker."""
    if settings.broker == "rabbitmq":
        parameters = pika.URLParameters(settings.rabbitmq_url)
        return Bridge(
            settings,
            RabbitMQSubscriptionAdmin(parameters),
            RabbitMQPublisher(parameters),
        )

    if not settings.project_id:
        raise ValueError("PROJECT_ID is required when BROKER=pubsub")
    return Bridge(
        settings,
        PubSubSubscriptionAdmin(pubsub_v1.SubscriberClient(), settings.project_id),
        PubSubPublisher(pubsub_v1.PublisherClient(), settings.project_id),
    )


def main() -> None:
    settings = Settings()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)

    bridge = build_bridge(settings)
    bridge.coordinator.install()
    app = create_app(bridge)

    logger.info("App listening on port %s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
