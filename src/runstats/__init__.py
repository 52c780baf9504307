"""Periodic Python runtime metrics collector."""

from .config import Config, load_config, resolve_config
from .exceptions import ConfigError, RunstatsError, SchedulerError, SinkNotReadyError
from .pipeline import PublishAdapter, RunStats, run_collector
from .sink.base import Point, Sink

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ConfigError",
    "Point",
    "PublishAdapter",
    "RunStats",
    "RunstatsError",
    "SchedulerError",
    "Sink",
    "SinkNotReadyError",
    "load_config",
    "resolve_config",
    "run_collector",
]
