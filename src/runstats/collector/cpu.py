"""CPU metric group for the current process."""

from __future__ import annotations

import threading
import time

import psutil

from .base import BaseGroup


class CpuGroup(BaseGroup):
    """Reports CPU time consumed by this process since the previous sample.

    The first sample covers the time since the group was created.
    """

    FIELDS = frozenset({
        "cpu.count",
        "cpu.threads",
        "cpu.os_threads",
        "cpu.user",
        "cpu.system",
        "cpu.percent",
    })

    def __init__(self, process: psutil.Process | None = None) -> None:
        self._process = process or psutil.Process()
        self._cpu_count = psutil.cpu_count() or 1
        times = self._process.cpu_times()
        self._prev_user = times.user
        self._prev_system = times.system
        self._prev_time = time.monotonic()

    @property
    def name(self) -> str:
        return "cpu"

    @property
    def field_names(self) -> frozenset[str]:
        return self.FIELDS

    def collect(self) -> dict[str, float]:
        now = time.monotonic()
        times = self._process.cpu_times()
        user = max(times.user - self._prev_user, 0.0)
        system = max(times.system - self._prev_system, 0.0)
        elapsed = now - self._prev_time

        self._prev_user = times.user
        self._prev_system = times.system
        self._prev_time = now

        percent = (user + system) / elapsed * 100.0 if elapsed > 0 else 0.0
        return {
            "cpu.count": float(self._cpu_count),
            "cpu.threads": float(threading.active_count()),
            "cpu.os_threads": float(self._process.num_threads()),
            "cpu.user": user,
            "cpu.system": system,
            "cpu.percent": percent,
        }
