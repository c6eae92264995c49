"""Response callback protocol definitions."""

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class ResponseCallback(Protocol):
    """
    Optional observer of a single response wait.

    Called exactly once per wait with the terminal outcome:
    - ``(payload, None)`` when a message was parsed and acknowledged
    - ``(None, error)`` when the stream errored or the payload was malformed
    - ``(None, None)`` when the stream closed before a message arrived
    """

    def __call__(self, payload: Optional[Any], error: Optional[BaseException]) -> None:
        """
        Observe the outcome of a wait.

        Args:
            payload: Parsed JSON payload, or None on failure
            error: Failure cause, or None

        Note:
            Exceptions raised here are logged and do not affect the wait.
        """
        ...
