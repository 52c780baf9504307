"""Garbage-collector metric group."""

from __future__ import annotations

import gc
import time
from typing import Any

from .base import BaseGroup


class GcPauseTimer:
    """Times collector pauses through :data:`gc.callbacks`.

    Only collections that finish while the timer is installed are counted.
    """

    def __init__(self) -> None:
        self._started: float | None = None
        self._installed = False
        self.pause_total = 0.0
        self.last_pause = 0.0

    def _callback(self, phase: str, info: dict[str, Any]) -> None:
        if phase == "start":
            self._started = time.perf_counter()
        elif phase == "stop" and self._started is not None:
            pause = time.perf_counter() - self._started
            self._started = None
            self.last_pause = pause
            self.pause_total += pause

    def install(self) -> None:
        if not self._installed:
            gc.callbacks.append(self._callback)
            self._installed = True

    def uninstall(self) -> None:
        if self._installed:
            try:
                gc.callbacks.remove(self._callback)
            except ValueError:
                pass
            self._installed = False

    @property
    def installed(self) -> bool:
        return self._installed


class GcGroup(BaseGroup):
    """Collects generational GC counters and pause timings."""

    FIELDS = frozenset({
        "mem.gc.count",
        "mem.gc.collected",
        "mem.gc.uncollectable",
        "mem.gc.gen0",
        "mem.gc.gen1",
        "mem.gc.gen2",
        "mem.gc.pause_total",
        "mem.gc.pause",
    })

    def __init__(self) -> None:
        self._timer = GcPauseTimer()
        self._timer.install()

    @property
    def name(self) -> str:
        return "gc"

    @property
    def field_names(self) -> frozenset[str]:
        return self.FIELDS

    def collect(self) -> dict[str, float]:
        stats = gc.get_stats()
        gen0, gen1, gen2 = gc.get_count()[:3]
        return {
            "mem.gc.count": float(sum(s.get("collections", 0) for s in stats)),
            "mem.gc.collected": float(sum(s.get("collected", 0) for s in stats)),
            "mem.gc.uncollectable": float(sum(s.get("uncollectable", 0) for s in stats)),
            "mem.gc.gen0": float(gen0),
            "mem.gc.gen1": float(gen1),
            "mem.gc.gen2": float(gen2),
            "mem.gc.pause_total": self._timer.pause_total,
            "mem.gc.pause": self._timer.last_pause,
        }

    def close(self) -> None:
        self._timer.uninstall()
