"""Exception hierarchy for the relay bridge."""

from typing import Optional


class RelayError(Exception):
    """Base class for every error the bridge raises.

    Each subclass carries the HTTP status it maps to and a short error type
    used in the structured error body.
    """

    status_code = 500
    error_type = "relay_error"

    def __init__(
        self,
        message: str,
        subscription: Optional[str] = None,
        topic: Optional[str] = None,
    ):
        super().__init__(message)
        self.subscription = subscription
        self.topic = topic


class ProvisionError(RelayError):
    """Subscription existence check, create or open failed."""

    status_code = 503
    error_type = "provision_error"


class SubscriptionExistsError(RelayError):
    """Create raced an existing subscription. Not a failure for callers."""

    status_code = 409
    error_type = "subscription_exists"


class PublishError(RelayError):
    """Publishing the request envelope failed."""

    status_code = 500
    error_type = "publish_error"


class ParseError(RelayError):
    """A delivered message payload was not valid JSON."""

    status_code = 502
    error_type = "parse_error"


class StreamError(RelayError):
    """The broker reported an error on the subscription stream."""

    status_code = 502
    error_type = "stream_error"


class ClosedError(RelayError):
    """The subscription stream closed before a message arrived."""

    status_code = 503
    error_type = "closed"


class ResponseTimeoutError(RelayError):
    """No response arrived within the configured wait timeout."""

    status_code = 504
    error_type = "response_timeout"


class ShutdownTimeoutError(RelayError):
    """Subscription deletion was not confirmed within the cleanup budget.

    Logged during shutdown, never raised to callers.
    """

    error_type = "shutdown_timeout"
