"""Base interface for runtime metric groups."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


def _freeze(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class FieldSet:
    """The tags and numeric fields produced by one sampling tick."""

    fields: Mapping[str, float] = field(default_factory=dict)
    tags: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", _freeze(self.fields))
        object.__setattr__(self, "tags", _freeze(self.tags))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain dictionaries."""
        return {"fields": dict(self.fields), "tags": dict(self.tags)}


class BaseGroup(abc.ABC):
    """Abstract base class for a group of runtime metrics."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Group name used in logs."""

    @property
    @abc.abstractmethod
    def field_names(self) -> frozenset[str]:
        """Names of the fields this group always reports."""

    @abc.abstractmethod
    def collect(self) -> dict[str, float]:
        """Read current counters. Returns a mapping of field name to value."""

    def close(self) -> None:
        """Release any hooks installed by the group."""
