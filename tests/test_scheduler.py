"""Tests for the background scheduler."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from runstats.collector.sampler import RuntimeSampler
from runstats.collector.scheduler import Scheduler, SchedulerState
from runstats.exceptions import SchedulerError

from conftest import wait_for


def _sampler() -> RuntimeSampler:
    return RuntimeSampler(enable_cpu=False, enable_mem=True, enable_gc=False, tags={"host": "t"})


class TestNextDeadline:
    """The deadline rule that keeps ticks periodic without catch-up bursts."""

    def test_on_time_tick_keeps_period(self):
        assert Scheduler.next_deadline(10.0, 10.02, 1.0) == 11.0

    def test_overrun_within_one_interval_keeps_period(self):
        assert Scheduler.next_deadline(10.0, 10.9, 1.0) == 11.0

    def test_overrun_drops_missed_deadlines(self):
        # a tick that started at 10 and finished at 14.5 fires once at 14.5
        assert Scheduler.next_deadline(10.0, 14.5, 1.0) == 14.5

    def test_stall_produces_single_delayed_tick(self):
        interval = 1.0
        deadline = 1.0
        fired = []
        now = 0.0
        # tick at 1.0 stalls for 4 intervals, every other tick is instant
        durations = {1.0: 4.0}
        while True:
            now = max(now, deadline)
            if now > 10.0:
                break
            fired.append(now)
            now += durations.get(now, 0.0)
            deadline = Scheduler.next_deadline(deadline, now, interval)
        assert fired == [1.0, 5.0, 6.0, 7.0, 8.0, 9.0, 10.0]


class TestLifecycle:
    def test_rejects_non_positive_interval(self):
        with pytest.raises(SchedulerError):
            Scheduler(0, _sampler(), lambda fields: None)

    def test_state_transitions(self):
        cancel = threading.Event()
        scheduler = Scheduler(0.05, _sampler(), lambda fields: None)
        assert scheduler.state is SchedulerState.CREATED
        assert scheduler.is_alive() is False

        scheduler.start(cancel)
        assert scheduler.state is SchedulerState.RUNNING
        assert scheduler.is_alive()

        cancel.set()
        assert scheduler.join(timeout=1.0)
        assert scheduler.state is SchedulerState.STOPPED
        assert scheduler.is_alive() is False

    def test_cannot_restart_after_stop(self):
        cancel = threading.Event()
        scheduler = Scheduler(0.05, _sampler(), lambda fields: None)
        scheduler.start(cancel)
        cancel.set()
        scheduler.join(timeout=1.0)
        with pytest.raises(SchedulerError):
            scheduler.start(threading.Event())

    def test_cannot_start_twice(self, cancel):
        scheduler = Scheduler(0.05, _sampler(), lambda fields: None)
        scheduler.start(cancel)
        with pytest.raises(SchedulerError):
            scheduler.start(cancel)

    def test_already_cancelled_never_ticks(self):
        cancel = threading.Event()
        cancel.set()
        callback = MagicMock()
        scheduler = Scheduler(0.01, _sampler(), callback)
        scheduler.start(cancel)
        assert scheduler.join(timeout=1.0)
        callback.assert_not_called()
        assert scheduler.state is SchedulerState.STOPPED

    def test_on_stop_runs_once_on_exit(self):
        cancel = threading.Event()
        seen = []
        on_stop = MagicMock(side_effect=lambda: seen.append(scheduler.state))
        scheduler = Scheduler(0.02, _sampler(), lambda fields: None, on_stop=on_stop)
        scheduler.start(cancel)
        cancel.set()
        scheduler.join(timeout=1.0)
        on_stop.assert_called_once_with()
        assert seen == [SchedulerState.STOPPED]


class TestTicking:
    def test_first_tick_after_one_interval(self, cancel):
        calls = []
        scheduler = Scheduler(0.3, _sampler(), calls.append)
        scheduler.start(cancel)
        time.sleep(0.1)
        assert calls == []
        assert wait_for(lambda: len(calls) == 1, timeout=1.0)

    def test_cancel_stops_within_one_interval(self):
        cancel = threading.Event()
        calls = []
        scheduler = Scheduler(0.5, _sampler(), calls.append)
        scheduler.start(cancel)
        time.sleep(0.05)
        started = time.monotonic()
        cancel.set()
        assert scheduler.join(timeout=0.5)
        assert time.monotonic() - started < 0.5
        assert calls == []

    def test_no_calls_after_cancel(self):
        cancel = threading.Event()
        calls = []
        scheduler = Scheduler(0.02, _sampler(), calls.append)
        scheduler.start(cancel)
        assert wait_for(lambda: len(calls) >= 2)
        cancel.set()
        assert scheduler.join(timeout=1.0)
        seen = len(calls)
        time.sleep(0.1)
        assert len(calls) == seen

    def test_slow_callback_delays_instead_of_overlapping(self, cancel):
        interval = 0.05
        stall = 0.3
        active = 0
        max_active = 0
        calls = []
        lock = threading.Lock()

        def _callback(fields):
            nonlocal active, max_active
            with lock:
                active += 1
                max_active = max(max_active, active)
            if not calls:
                time.sleep(stall)
            calls.append(time.monotonic())
            with lock:
                active -= 1

        scheduler = Scheduler(interval, _sampler(), _callback)
        scheduler.start(cancel)
        time.sleep(0.6)
        cancel.set()
        scheduler.join(timeout=1.0)

        assert max_active == 1
        # without dropping missed deadlines the stall would be followed by a
        # burst of ~6 back-to-back ticks
        assert 3 <= len(calls) <= 8

    def test_callback_errors_do_not_stop_ticking(self, cancel):
        log = MagicMock()

        def _explode(fields):
            raise RuntimeError("boom")

        scheduler = Scheduler(0.02, _sampler(), _explode, log=log)
        scheduler.start(cancel)
        assert wait_for(lambda: scheduler.ticks >= 3)
        assert scheduler.state is SchedulerState.RUNNING
        assert log.critical.call_count >= 3

    def test_callback_receives_fieldsets(self, cancel):
        calls = []
        scheduler = Scheduler(0.02, _sampler(), calls.append)
        scheduler.start(cancel)
        assert wait_for(lambda: len(calls) >= 2)
        assert calls[0] is not calls[1]
        assert "mem.rss" in calls[0].fields
