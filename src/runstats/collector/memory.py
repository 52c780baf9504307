"""Memory metric group for the current process."""

from __future__ import annotations

import sys
import tracemalloc

import psutil

from .base import BaseGroup


class MemoryGroup(BaseGroup):
    """Collects process memory usage.

    ``mem.rss``, ``mem.vms`` and ``mem.traced.*`` are in bytes.
    ``mem.alloc_blocks`` is a count of memory blocks the interpreter has
    allocated (:func:`sys.getallocatedblocks`), not a byte size.
    ``mem.traced.*`` fields are only reported while :mod:`tracemalloc` is
    tracing.
    """

    FIELDS = frozenset({
        "mem.rss",
        "mem.vms",
        "mem.alloc_blocks",
    })

    def __init__(self, process: psutil.Process | None = None) -> None:
        self._process = process or psutil.Process()

    @property
    def name(self) -> str:
        return "memory"

    @property
    def field_names(self) -> frozenset[str]:
        return self.FIELDS

    def collect(self) -> dict[str, float]:
        mem = self._process.memory_info()
        values = {
            "mem.rss": float(mem.rss),
            "mem.vms": float(mem.vms),
            "mem.alloc_blocks": float(sys.getallocatedblocks()),
        }
        if tracemalloc.is_tracing():
            current, peak = tracemalloc.get_traced_memory()
            values["mem.traced.current"] = float(current)
            values["mem.traced.peak"] = float(peak)
        return values
