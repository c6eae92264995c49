"""Fixtures for RabbitMQ integration tests."""

import subprocess
import time
import uuid

import pika
import pytest

RABBITMQ_PORT = 5673  # Non-default port to avoid conflicts


@pytest.fixture(scope="session")
def rabbitmq_container():
    """Start RabbitMQ Docker container for test session."""
    container_name = "relay-rabbitmq-test"

    # Clean up any existing container
    subprocess.run(["docker", "rm", "-f", container_name], capture_output=True)

    subprocess.run(
        [
            "docker",
            "run",
            "-d",
            "--name",
            container_name,
            "-p",
            f"{RABBITMQ_PORT}:5672",
            "rabbitmq:3-management",
        ],
        check=True,
        capture_output=True,
    )

    # Wait for RabbitMQ to be ready
    time.sleep(10)

    yield

    subprocess.run(["docker", "stop", container_name], capture_output=True)
    subprocess.run(["docker", "rm", container_name], capture_output=True)


@pytest.fixture(scope="session")
def parameters(rabbitmq_container) -> pika.ConnectionParameters:
    return pika.ConnectionParameters(host="localhost", port=RABBITMQ_PORT)


@pytest.fixture(scope="session")
def rabbitmq_connection(parameters) -> pika.BlockingConnection:
    """Provide RabbitMQ connection for setup and verification."""
    connection = pika.BlockingConnection(parameters)
    yield connection
    if connection.is_open:
        connection.close()


@pytest.fixture
def response_topic(rabbitmq_connection) -> str:
    """Create a unique fanout exchange standing in for the response topic."""
    exchange = f"test-response-{uuid.uuid4().hex[:8]}"
    channel = rabbitmq_connection.channel()
    channel.exchange_declare(exchange=exchange, exchange_type="fanout")

    yield exchange

    channel.exchange_delete(exchange=exchange)


@pytest.fixture
def subscription_name() -> str:
    return f"test-resp-{uuid.uuid4().hex[:10]}"
