"""Single-shot response wait on a subscription stream."""

import asyncio
import json
import logging
from typing import Any, Callable, Optional

from relay.errors import ClosedError, ParseError, RelayError, ResponseTimeoutError, StreamError
from relay.models.message import Message
from relay.protocols.handler import ResponseCallback
from relay.protocols.subscriber import Subscription
from relay.stream import EventKind

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    # NaN and Infinity cannot be rendered back into a JSON response
    raise ValueError(f"Non-standard JSON constant {name}")


class PendingWait:
    """
    Live state of one outstanding wait.

    Holds the future, the optional callback and the exact listener handles
    registered on the subscription. The first terminal event removes every
    handle before settling the future, so later broker events never reach
    this wait.
    """

    def __init__(
        self,
        subscription: Subscription,
        future: asyncio.Future,
        callback: Optional[ResponseCallback] = None,
    ):
        self.subscription = subscription
        self.future = future
        self.callback = callback
        self._handles: list[tuple[EventKind, Callable[[Any], None]]] = []

    @property
    def handles(self) -> list[tuple[EventKind, Callable[[Any], None]]]:
        return list(self._handles)

    def register(self) -> None:
        """Register the message, error, debug and close listeners."""
        for kind, handler in (
            (EventKind.MESSAGE, self._on_message),
            (EventKind.ERROR, self._on_error),
            (EventKind.DEBUG, self._on_debug),
            (EventKind.CLOSE, self._on_close),
        ):
            self.subscription.on(kind, handler)
            self._handles.append((kind, handler))
        self.future.add_done_callback(self._on_done)

    def teardown(self) -> None:
        """Remove every registered handle. Safe to call repeatedly."""
        while self._handles:
            kind, handler = self._handles.pop()
            if not self.subscription.remove_listener(kind, handler):
                logger.warning(
                    "Listener for %s on %s was already removed", kind.value, self.subscription.name
                )

    def _on_message(self, message: Message) -> None:
        if self.future.done():
            # Cancelled; done callback has not run yet
            self.teardown()
            logger.info(
                "Wait on %s already cancelled; releasing message %s",
                self.subscription.name,
                message.message_id,
            )
            message.nack()
            return
        try:
            payload = json.loads(message.data, parse_constant=_reject_constant)
        except ValueError as exc:
            error = ParseError(
                f"Message {message.message_id} is not valid JSON",
                subscription=self.subscription.name,
            )
            error.__cause__ = exc
            logger.error("%s; leaving it unacknowledged", error)
            self._reject(error, error)
            return

        self.teardown()
        message.ack()
        self._notify(payload, None)
        self.future.set_result(payload)

    def _on_error(self, error: BaseException) -> None:
        logger.error("Subscription %s stream error: %s", self.subscription.name, error)
        if self.future.done():
            self.teardown()
            return
        stream_error = StreamError(
            f"Subscription stream reported an error: {error}",
            subscription=self.subscription.name,
        )
        stream_error.__cause__ = error
        self._reject(stream_error, error)

    def _on_debug(self, info: Any) -> None:
        logger.debug("Subscription %s debug: %s", self.subscription.name, info)

    def _on_close(self, _reason: Any = None) -> None:
        if self.future.done():
            self.teardown()
            return
        self._reject(
            ClosedError(
                "Subscription stream closed unexpectedly",
                subscription=self.subscription.name,
            ),
            None,
        )

    def _on_done(self, future: asyncio.Future) -> None:
        if future.cancelled():
            logger.debug("Wait on %s cancelled", self.subscription.name)
        self.teardown()

    def _reject(self, error: RelayError, reported: Optional[BaseException]) -> None:
        self.teardown()
        self._notify(None, reported)
        self.future.set_exception(error)

    def _notify(self, payload: Optional[Any], error: Optional[BaseException]) -> None:
        if self.callback is None:
            return
        try:
            self.callback(payload, error)
        except Exception:
            logger.exception("Response callback raised")


class ResponseWaiter:
    """
    Resolves a future with the payload of the first message on a subscription.

    There is no correlation token: whichever message is delivered first is
    the response to the current caller. Safe only with one wait in flight per
    subscription; ``relay.bridge.Bridge`` serializes waits for that reason.
    """

    def await_one(
        self,
        subscription: Subscription,
        callback: Optional[ResponseCallback] = None,
    ) -> asyncio.Future:
        """
        Register a single-shot wait and return its future.

        Listeners are registered before this returns. Must be called on the
        running event loop.

        Args:
            subscription: Open subscription handle
            callback: Optional observer of the terminal outcome

        Returns:
            Future resolving to the parsed JSON payload, or failing with
            ParseError, StreamError or ClosedError
        """
        future = asyncio.get_running_loop().create_future()
        PendingWait(subscription, future, callback).register()
        return future

    async def result(self, future: asyncio.Future, timeout: Optional[float] = None) -> Any:
        """Await a wait's future, failing with ResponseTimeoutError after ``timeout`` seconds."""
        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError as exc:
            raise ResponseTimeoutError(f"No response within {timeout} seconds") from exc

    async def wait(
        self,
        subscription: Subscription,
        callback: Optional[ResponseCallback] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Register a wait and await its payload."""
        return await self.result(self.await_one(subscription, callback), timeout)
