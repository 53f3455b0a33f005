"""Tests for last operation polling."""

import threading
import pytest
from unittest.mock import Mock

from broker_cli.client.types import Operation
from broker_cli.exceptions import BrokerError, OperationTimeoutError
from broker_cli.models.osb import OPERATION_IN_PROGRESS, OPERATION_SUCCEEDED, OPERATION_FAILED
from broker_cli.utils.polling import BackoffConfig, BackoffManager, wait_on_operation


def operations(*states):
    return [Operation(state=s) for s in states]


class FakeClock:
    """Clock advanced only by the fake sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class TestBackoff:
    """Test the delay schedule."""

    def test_default_schedule(self):
        """Test delays start at 100ms and double."""
        manager = BackoffManager()

        assert manager.calculate_delay(1) == pytest.approx(0.1)
        assert manager.calculate_delay(2) == pytest.approx(0.2)
        assert manager.calculate_delay(3) == pytest.approx(0.4)

    def test_schedule_is_capped_and_non_decreasing(self):
        """Test the schedule never decreases and never exceeds 6s."""
        delays = [BackoffManager().calculate_delay(n) for n in range(1, 30)]

        assert all(a <= b for a, b in zip(delays, delays[1:]))
        assert max(delays) == 6.0
        assert delays[-1] == 6.0

    def test_custom_config(self):
        """Test a custom base and cap."""
        manager = BackoffManager(BackoffConfig(base_delay=1.0, max_delay=3.0))

        delays = manager.delays()

        assert [next(delays) for _ in range(4)] == [1.0, 2.0, 3.0, 3.0]


class TestWaitOnOperation:
    """Test the polling loop."""

    def test_polls_until_terminal(self):
        """Test N in-progress responses then success take N+1 polls."""
        clock = FakeClock()
        poll = Mock(side_effect=operations(
            OPERATION_IN_PROGRESS, OPERATION_IN_PROGRESS, OPERATION_IN_PROGRESS, OPERATION_SUCCEEDED
        ))

        op = wait_on_operation(poll, sleep=clock.sleep, clock=clock)

        assert op.state == OPERATION_SUCCEEDED
        assert poll.call_count == 4
        assert clock.sleeps == pytest.approx([0.1, 0.2, 0.4, 0.8])

    def test_failed_state_is_terminal(self):
        """Test a failed operation ends polling without an error."""
        clock = FakeClock()
        poll = Mock(side_effect=operations(OPERATION_IN_PROGRESS, OPERATION_FAILED))

        op = wait_on_operation(poll, sleep=clock.sleep, clock=clock)

        assert op.failed
        assert poll.call_count == 2

    def test_error_propagates_on_first_poll(self):
        """Test a poll error aborts after one call."""
        error = BrokerError(status_code=500, description="request was not successful")
        poll = Mock(side_effect=error)
        clock = FakeClock()

        with pytest.raises(BrokerError) as exc_info:
            wait_on_operation(poll, sleep=clock.sleep, clock=clock)

        assert exc_info.value is error
        assert poll.call_count == 1

    def test_progress_called_before_each_poll(self):
        """Test the progress callback."""
        clock = FakeClock()
        progress = Mock()
        poll = Mock(side_effect=operations(OPERATION_IN_PROGRESS, OPERATION_SUCCEEDED))

        wait_on_operation(poll, progress=progress, sleep=clock.sleep, clock=clock)

        assert progress.call_count == 2

    def test_timeout(self):
        """Test polling stops once the deadline passes."""
        clock = FakeClock()
        poll = Mock(return_value=Operation(state=OPERATION_IN_PROGRESS, description="working"))

        with pytest.raises(OperationTimeoutError) as exc_info:
            wait_on_operation(poll, timeout=1.0, sleep=clock.sleep, clock=clock)

        assert exc_info.value.last_operation.description == "working"
        assert exc_info.value.details['timeout_seconds'] == 1.0
        # 0.1 + 0.2 + 0.4, then the remaining 0.3 instead of 0.8
        assert clock.sleeps == pytest.approx([0.1, 0.2, 0.4, 0.3])
        assert poll.call_count == 4

    def test_terminal_on_last_poll_before_deadline(self):
        """Test the poll after the shortened sleep can still succeed."""
        clock = FakeClock()
        poll = Mock(side_effect=operations(
            OPERATION_IN_PROGRESS, OPERATION_IN_PROGRESS, OPERATION_IN_PROGRESS, OPERATION_SUCCEEDED
        ))

        op = wait_on_operation(poll, timeout=1.0, sleep=clock.sleep, clock=clock)

        assert op.state == OPERATION_SUCCEEDED
        assert clock.sleeps == pytest.approx([0.1, 0.2, 0.4, 0.3])

    def test_cancel(self):
        """Test a set cancel event stops polling before the next poll."""
        cancel = threading.Event()
        cancel.set()
        poll = Mock()

        with pytest.raises(OperationTimeoutError):
            wait_on_operation(poll, cancel_event=cancel)

        poll.assert_not_called()

    def test_cancel_during_polling(self):
        """Test cancelling after some polls."""
        cancel = threading.Event()

        def poll():
            cancel.set()
            return Operation(state=OPERATION_IN_PROGRESS)

        with pytest.raises(OperationTimeoutError) as exc_info:
            wait_on_operation(poll, cancel_event=cancel,
                              config=BackoffConfig(base_delay=0.0, max_delay=0.0))

        assert exc_info.value.last_operation.state == OPERATION_IN_PROGRESS
