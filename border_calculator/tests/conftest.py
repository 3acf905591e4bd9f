import pytest

from border_calculator.dimensions import resolve_dimensions
from border_calculator.models import CalculatorState


class FakeScheduler:
    """Collects callbacks instead of running them on a timer."""

    def __init__(self):
        self.calls = {}
        self.cancelled = []
        self._next = 0

    def call_later(self, delay_ms, callback):
        self._next += 1
        self.calls[self._next] = (delay_ms, callback)
        return self._next

    def cancel(self, handle):
        self.cancelled.append(handle)
        self.calls.pop(handle, None)

    def run_pending(self):
        calls, self.calls = self.calls, {}
        for _, callback in calls.values():
            callback()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def portrait_8x10():
    return resolve_dimensions(CalculatorState(is_landscape=False))
