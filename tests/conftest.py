"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import threading
import time

import pytest

from runstats.exceptions import SinkNotReadyError
from runstats.sink.base import Point, Sink


class RecordingSink(Sink):
    """Keeps every written point in memory."""

    def __init__(self, fail: bool = False, not_ready: bool = False) -> None:
        self.points: list[Point] = []
        self.attempts = 0
        self.fail = fail
        self.not_ready = not_ready
        self.shut_down = False
        self._lock = threading.Lock()

    def ready(self) -> None:
        if self.not_ready:
            raise SinkNotReadyError("backend unreachable")

    def write(self, point: Point) -> None:
        with self._lock:
            self.attempts += 1
            if self.fail:
                raise ConnectionError("write rejected")
            self.points.append(point)

    def shutdown(self) -> None:
        self.shut_down = True


def wait_for(predicate, timeout: float = 2.0, step: float = 0.01) -> bool:
    """Poll *predicate* until it is true or *timeout* elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(step)
    return predicate()


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failing_sink() -> RecordingSink:
    return RecordingSink(fail=True)


@pytest.fixture
def cancel():
    """A cancellation event that is always set at teardown."""
    event = threading.Event()
    yield event
    event.set()
