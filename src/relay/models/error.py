"""Error models for standardized HTTP error bodies."""

from typing import Optional

from relay.errors import RelayError
from relay.models.base import CamelCaseModel


class ErrorDetails(CamelCaseModel):
    """Additional structured error details."""

    subscription_name: Optional[str] = None
    topic_name: Optional[str] = None
    cause: Optional[str] = None


class ErrorInfo(CamelCaseModel):
    """Structured error information."""

    type: str  # Error type (publish_error, parse_error, closed, etc.)
    message: str
    details: Optional[ErrorDetails] = None

    @classmethod
    def from_error(cls, error: RelayError) -> "ErrorInfo":
        cause = error.__cause__
        details = ErrorDetails(
            subscription_name=error.subscription,
            topic_name=error.topic,
            cause=repr(cause) if cause is not None else None,
        )
        if details.model_dump(exclude_none=True):
            return cls(type=error.error_type, message=str(error), details=details)
        return cls(type=error.error_type, message=str(error))
