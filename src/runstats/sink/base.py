"""Base interface for metrics sinks."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class Point:
    """One timestamped, tagged, multi-field measurement."""

    measurement: str
    tags: Mapping[str, str]
    fields: Mapping[str, float]
    # UNIX epoch seconds.
    timestamp: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "measurement": self.measurement,
            "tags": dict(self.tags),
            "fields": dict(self.fields),
            "timestamp": self.timestamp,
        }


class Sink(abc.ABC):
    """Abstract base for backends that accept points.

    Buffering, batching and retries are the sink's own business.
    """

    @abc.abstractmethod
    def write(self, point: Point) -> None:
        """Submit one point. Raise on failure."""

    def ready(self) -> None:
        """Raise :class:`~runstats.exceptions.SinkNotReadyError` if unreachable."""

    @abc.abstractmethod
    def shutdown(self) -> None:
        """Flush and release resources."""
