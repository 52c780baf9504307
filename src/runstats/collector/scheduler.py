"""Scheduler that samples the runtime on a fixed interval in the background."""

from __future__ import annotations

import enum
import logging
import threading
import time
from typing import Any, Callable

from ..exceptions import SchedulerError
from .base import FieldSet
from .sampler import RuntimeSampler

logger = logging.getLogger(__name__)


class SchedulerState(enum.Enum):
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"


class Scheduler:
    """Runs a :class:`RuntimeSampler` on a single background thread.

    Every *interval* seconds the sampler is read and the resulting
    :class:`FieldSet` is handed to *callback*. Ticks never overlap: when a
    tick overruns, the missed deadlines are dropped and the next tick fires
    as soon as the slow one returns.

    The loop runs until the ``threading.Event`` passed to :meth:`start` is
    set. A stopped scheduler cannot be started again. *on_stop* runs on the
    worker thread after the state has become STOPPED, so it must return
    within one interval for the thread to exit in time.
    """

    def __init__(
        self,
        interval: float,
        sampler: RuntimeSampler,
        callback: Callable[[FieldSet], None],
        log: Any = None,
        on_stop: Callable[[], None] | None = None,
    ) -> None:
        if interval <= 0:
            raise SchedulerError(f"interval must be positive, got {interval!r}")
        self._interval = interval
        self._sampler = sampler
        self._callback = callback
        self._on_stop = on_stop
        self._thread: threading.Thread | None = None
        self._state = SchedulerState.CREATED
        self._ticks = 0
        self.logger = log if log is not None else logger

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def ticks(self) -> int:
        """Number of completed ticks."""
        return self._ticks

    @staticmethod
    def next_deadline(deadline: float, now: float, interval: float) -> float:
        """Return the deadline following *deadline*, dropping any already missed."""
        deadline += interval
        if deadline < now:
            deadline = now
        return deadline

    def _tick(self) -> None:
        try:
            fields = self._sampler.sample()
            self._callback(fields)
        except Exception:
            self.logger.critical("runstats tick failed", exc_info=True)
        self._ticks += 1

    def _run(self, cancel: threading.Event) -> None:
        """Background thread loop."""
        deadline = time.monotonic() + self._interval
        try:
            while not cancel.wait(max(deadline - time.monotonic(), 0.0)):
                self._tick()
                deadline = self.next_deadline(deadline, time.monotonic(), self._interval)
        finally:
            self._sampler.close()
            self._state = SchedulerState.STOPPED
            if self._on_stop is not None:
                try:
                    self._on_stop()
                except Exception:
                    self.logger.critical("runstats shutdown hook failed", exc_info=True)
            logger.info("Scheduler stopped after %d ticks", self._ticks)

    def start(self, cancel: threading.Event) -> None:
        """Start ticking in the background until *cancel* is set."""
        if self._state is not SchedulerState.CREATED:
            raise SchedulerError(f"cannot start a scheduler in state {self._state.value}")
        self._state = SchedulerState.RUNNING
        self._thread = threading.Thread(
            target=self._run, args=(cancel,), name="runstats-scheduler", daemon=True,
        )
        self._thread.start()
        logger.info("Scheduler started (interval=%.3fs)", self._interval)

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the background thread to exit. Returns True once it has."""
        if self._thread is None:
            return self._state is not SchedulerState.RUNNING
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
