"""Polling of asynchronous broker operations with exponential backoff."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from broker_cli.client.types import Operation
from broker_cli.exceptions import OperationTimeoutError
from broker_cli.models.osb import OPERATION_IN_PROGRESS

logger = logging.getLogger(__name__)


@dataclass
class BackoffConfig:
    """Configuration for the delay between two polls."""
    base_delay: float = 0.1  # Delay before the first poll, in seconds
    max_delay: float = 6.0  # Maximum delay in seconds
    exponential_base: float = 2.0  # Exponential backoff multiplier


class BackoffManager:
    """Computes the delay schedule of a polling loop."""

    def __init__(self, config: Optional[BackoffConfig] = None):
        """Initialize backoff manager.

        Args:
            config: Backoff configuration (uses defaults if None)
        """
        self.config = config or BackoffConfig()

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay before the given (1-based) poll."""
        delay = self.config.base_delay * (self.config.exponential_base ** (attempt - 1))
        return min(delay, self.config.max_delay)

    def delays(self) -> Iterator[float]:
        """Yield the delay before each successive poll, forever."""
        attempt = 1
        while True:
            yield self.calculate_delay(attempt)
            attempt += 1


def wait_on_operation(
    poll_operation: Callable[[], Operation],
    progress: Optional[Callable[[], None]] = None,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
    config: Optional[BackoffConfig] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic
) -> Operation:
    """Poll an operation until it leaves the "in progress" state.

    Errors raised by ``poll_operation`` abort the loop and propagate
    unchanged; retrying is up to the caller. A "failed" operation is a
    normal return value.

    Args:
        poll_operation: Issues one last operation request
        progress: Called before every poll, e.g. to print a progress marker
        timeout: Seconds after which polling gives up (None waits forever)
        cancel_event: Stops polling once set, interrupting the current sleep
        config: Backoff schedule (base 100ms, doubling, capped at 6s by default)
        sleep: Sleep function, used when no cancel_event is given
        clock: Monotonic clock used for the deadline

    Returns:
        The operation in its terminal state

    Raises:
        OperationTimeoutError: if cancelled or the deadline passed
    """
    backoff = BackoffManager(config)
    deadline = clock() + timeout if timeout is not None else None

    operation = None
    state = OPERATION_IN_PROGRESS
    polls = 0

    for delay in backoff.delays():
        if state != OPERATION_IN_PROGRESS:
            break

        if deadline is not None:
            remaining = deadline - clock()
            if remaining <= 0:
                raise OperationTimeoutError(
                    f"operation still in progress after {timeout} seconds",
                    last_operation=operation,
                    timeout_seconds=timeout
                )
            delay = min(delay, remaining)

        if progress:
            progress()

        if cancel_event is not None:
            if cancel_event.wait(delay):
                raise OperationTimeoutError("operation polling was cancelled",
                                            last_operation=operation)
        else:
            sleep(delay)

        operation = poll_operation()
        polls += 1
        logger.debug(f"Poll {polls}: operation state '{operation.state}'")
        state = operation.state

    # States other than "in progress" are all end states.
    return operation
