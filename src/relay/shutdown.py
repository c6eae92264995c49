"""Best-effort deletion of the owned subscription on process termination."""

import atexit
import logging
import os
import signal
import sys
import threading
from enum import Enum
from typing import Callable, Optional

from relay.errors import ShutdownTimeoutError
from relay.protocols.subscriber import SubscriptionAdmin
from relay.provisioner import SubscriptionProvisioner

logger = logging.getLogger(__name__)

DEFAULT_BUDGET_SECONDS = 2.0


class ShutdownTrigger(Enum):
    """Why the process is stopping: ``(exit code, force exit after cleanup)``."""

    GRACEFUL = (0, False)  # server lifespan after SIGINT/SIGTERM
    SIGNAL = (0, True)  # SIGUSR1/SIGUSR2
    FATAL = (1, True)  # uncaught exception
    EXIT = (None, False)  # interpreter exit

    def __init__(self, exit_code: Optional[int], force_exit: bool):
        self.exit_code = exit_code
        self.force_exit = force_exit


class CleanupOutcome(str, Enum):
    DELETED = "deleted"
    ABSENT = "absent"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    SKIPPED = "skipped"


def _terminate(exit_code: int) -> None:
    logging.shutdown()
    os._exit(exit_code)


class ShutdownCoordinator:
    """
    Funnels every shutdown trigger into one cleanup routine.

    Cleanup runs at most once per process. Broker calls happen on a worker
    thread that the caller joins with a deadline of ``budget`` seconds; a
    deletion still running after the deadline is abandoned and the
    subscription may be left orphaned in the broker.
    """

    def __init__(
        self,
        admin: SubscriptionAdmin,
        subscription_name: str,
        provisioner: Optional[SubscriptionProvisioner] = None,
        budget: float = DEFAULT_BUDGET_SECONDS,
        exit_func: Callable[[int], None] = _terminate,
    ):
        self.admin = admin
        self.subscription_name = subscription_name
        self.provisioner = provisioner
        self.budget = budget
        self._exit = exit_func
        self._lock = threading.Lock()
        self._cleaned = False
        self._outcome: Optional[CleanupOutcome] = None
        self._previous_excepthook = None

    def handle(self, trigger: ShutdownTrigger) -> CleanupOutcome:
        """Run cleanup (once) and apply the trigger's exit policy."""
        logger.warning(
            "Handling shutdown: trigger=%s exit_code=%s", trigger.name, trigger.exit_code
        )
        outcome = self.cleanup()
        if trigger.force_exit:
            logger.info("Exiting with code %s", trigger.exit_code)
            self._exit(trigger.exit_code)
        return outcome

    def cleanup(self) -> CleanupOutcome:
        """Close the stream and delete the subscription within the budget."""
        with self._lock:
            if self._cleaned:
                return CleanupOutcome.SKIPPED
            self._cleaned = True

        logger.info("Cleaning up subscription %s", self.subscription_name)
        worker = threading.Thread(
            target=self._run_cleanup,
            name=f"cleanup-{self.subscription_name}",
            daemon=True,
        )
        worker.start()
        worker.join(self.budget)

        if worker.is_alive():
            error = ShutdownTimeoutError(
                f"Deletion of subscription {self.subscription_name} not confirmed "
                f"within {self.budget:.1f}s; it may be orphaned",
                subscription=self.subscription_name,
            )
            logger.warning("%s", error)
            return CleanupOutcome.TIMED_OUT
        return self._outcome or CleanupOutcome.FAILED

    def _run_cleanup(self) -> None:
        # Stream close and deletion share one budget
        if self.provisioner is not None:
            try:
                self.provisioner.close()
            except Exception:
                logger.exception("Closing subscription stream %s failed", self.subscription_name)
        self._delete_subscription()

    def _delete_subscription(self) -> None:
        try:
            if not self.admin.subscription_exists(self.subscription_name):
                logger.info("Subscription %s already gone", self.subscription_name)
                self._outcome = CleanupOutcome.ABSENT
                return
            logger.info("Deleting subscription %s", self.subscription_name)
            self.admin.delete_subscription(self.subscription_name)
            logger.info("Subscription %s deleted", self.subscription_name)
            self._outcome = CleanupOutcome.DELETED
        except Exception:
            logger.exception("Deleting subscription %s failed", self.subscription_name)
            self._outcome = CleanupOutcome.FAILED

    def install(self) -> None:
        """Hook SIGUSR1/SIGUSR2, uncaught exceptions and interpreter exit.

        SIGINT and SIGTERM are left to the server, which reports GRACEFUL
        from its lifespan shutdown.
        """
        for name in ("SIGUSR1", "SIGUSR2"):
            signum = getattr(signal, name, None)
            if signum is not None:
                signal.signal(signum, self._on_signal)
        self._previous_excepthook = sys.excepthook
        sys.excepthook = self._on_uncaught_exception
        atexit.register(self.handle, ShutdownTrigger.EXIT)

    def _on_signal(self, signum: int, _frame) -> None:
        logger.info("Received signal %s", signal.Signals(signum).name)
        self.handle(ShutdownTrigger.SIGNAL)

    def _on_uncaught_exception(self, exc_type, exc_value, exc_traceback) -> None:
        if self._previous_excepthook is not None:
            self._previous_excepthook(exc_type, exc_value, exc_traceback)
        self.handle(ShutdownTrigger.FATAL)
