"""Runtime sampler that combines the enabled metric groups into one FieldSet."""

from __future__ import annotations

import logging
import os
import platform
import sys

import psutil

from ..config import hostname
from .base import BaseGroup, FieldSet
from .cpu import CpuGroup
from .gc import GcGroup
from .memory import MemoryGroup

logger = logging.getLogger(__name__)


def default_tags() -> dict[str, str]:
    """Return the host and interpreter identity tags attached to every FieldSet."""
    process = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else ""
    return {
        "host": hostname(),
        "process": process or "python",
        "python.version": platform.python_version(),
        "python.implementation": platform.python_implementation(),
        "python.os": sys.platform,
        "python.arch": platform.machine() or "unknown",
    }


class RuntimeSampler:
    """Reads in-process runtime counters for the enabled groups.

    GC statistics are only collected when memory statistics are enabled.
    With every group disabled :meth:`sample` returns a FieldSet with no fields.
    """

    def __init__(
        self,
        enable_cpu: bool = True,
        enable_mem: bool = True,
        enable_gc: bool = True,
        tags: dict[str, str] | None = None,
    ) -> None:
        self._tags = dict(tags) if tags is not None else default_tags()
        self._groups: list[BaseGroup] = []

        process = psutil.Process()
        if enable_cpu:
            self._groups.append(CpuGroup(process))
        if enable_mem:
            self._groups.append(MemoryGroup(process))
            if enable_gc:
                self._groups.append(GcGroup())

    @property
    def groups(self) -> list[BaseGroup]:
        return list(self._groups)

    @property
    def field_names(self) -> frozenset[str]:
        """Names every sample reports, excluding optional fields."""
        names: set[str] = set()
        for group in self._groups:
            names |= group.field_names
        return frozenset(names)

    def sample(self) -> FieldSet:
        """Read all enabled groups once and return a fresh FieldSet."""
        fields: dict[str, float] = {}
        for group in self._groups:
            try:
                fields.update(group.collect())
            except (psutil.Error, OSError):
                logger.debug("Group %s produced no values", group.name, exc_info=True)
            except Exception:
                logger.exception("Group %s failed", group.name)
        return FieldSet(fields=fields, tags=self._tags)

    def close(self) -> None:
        """Remove hooks installed by the groups."""
        for group in self._groups:
            group.close()
