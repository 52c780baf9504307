"""Wires the sampler, scheduler and sink together into a running collector."""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Any, Protocol

from .collector.base import FieldSet
from .collector.sampler import RuntimeSampler
from .collector.scheduler import Scheduler, SchedulerState
from .config import Config, resolve_config, validate_config
from .sink.base import Point, Sink

logger = logging.getLogger(__name__)


class Logger(Protocol):
    """Anything with ``info`` and ``critical`` methods, e.g. a ``logging.Logger``."""

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


def default_logger() -> logging.Logger:
    """Return the package logger.

    Without logging configured by the application, ``info`` records are
    dropped and ``critical`` records reach stderr through
    :data:`logging.lastResort`.
    """
    return logging.getLogger("runstats")


def build_sink(config: Config) -> Sink:
    """Create the sink selected by ``config.mode``."""
    if config.mode == "local":
        from .sink.local import LocalSink
        return LocalSink(config.output_dir)

    from .sink.otel import OtelSink
    return OtelSink(config)


class PublishAdapter:
    """Turns each :class:`FieldSet` into a :class:`Point` and writes it to the sink.

    Write failures are reported through ``logger.info`` and the point is
    dropped. Timestamps are strictly increasing across calls.
    """

    def __init__(self, measurement: str, sink: Sink, log: Logger | None = None) -> None:
        self.measurement = measurement
        self.sink = sink
        self.logger: Logger = log if log is not None else default_logger()
        self._last_timestamp = 0.0

    def _timestamp(self) -> float:
        now = time.time()
        if now <= self._last_timestamp:
            now = math.nextafter(self._last_timestamp, math.inf)
        self._last_timestamp = now
        return now

    def __call__(self, fields: FieldSet) -> None:
        point = Point(
            measurement=self.measurement,
            tags=fields.tags,
            fields=fields.fields,
            timestamp=self._timestamp(),
        )
        try:
            self.sink.write(point)
        except Exception as exc:
            self.logger.info("runstats: failed to write point to %s: %s", self.measurement, exc)


class RunStats:
    """Handle on a running collector returned by :func:`run_collector`.

    The collector stops when the cancellation event it was started with is
    set; there is no separate stop method.
    """

    def __init__(self, config: Config, sink: Sink, owns_sink: bool = False) -> None:
        self.config = config
        self.sink = sink
        self._owns_sink = owns_sink
        self._adapter = PublishAdapter(config.measurement, sink)
        self._sampler = RuntimeSampler(
            enable_cpu=config.enable_cpu,
            enable_mem=config.enable_mem,
            enable_gc=config.enable_gc,
        )
        self._scheduler = Scheduler(
            config.interval,
            self._sampler,
            self._adapter,
            log=self._adapter.logger,
            on_stop=self._on_stop,
        )

    def _on_stop(self) -> None:
        if self._owns_sink:
            self.sink.shutdown()

    def _start(self, cancel: threading.Event) -> None:
        self._scheduler.start(cancel)

    def set_logger(self, log: Logger) -> None:
        """Route publish errors and tick failures to *log*."""
        self._adapter.logger = log
        self._scheduler.logger = log

    @property
    def logger(self) -> Logger:
        return self._adapter.logger

    @property
    def state(self) -> SchedulerState:
        return self._scheduler.state

    @property
    def ticks(self) -> int:
        return self._scheduler.ticks

    def is_running(self) -> bool:
        return self._scheduler.state is SchedulerState.RUNNING

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the background worker to exit after cancellation."""
        return self._scheduler.join(timeout)


def run_collector(
    cancel: threading.Event,
    config: Config | None = None,
    sink: Sink | None = None,
) -> RunStats:
    """Start collecting runtime metrics in the background.

    *config* is resolved with :func:`~runstats.config.resolve_config`. When
    *sink* is None one is built from the config and shut down once the
    collector stops. Raises :class:`~runstats.exceptions.ConfigError` or
    :class:`~runstats.exceptions.SinkNotReadyError` before anything starts
    ticking. Set *cancel* to stop the collector.
    """
    config = resolve_config(config)
    validate_config(config)

    owns_sink = sink is None
    if sink is None:
        sink = build_sink(config)

    try:
        sink.ready()
    except Exception:
        if owns_sink:
            sink.shutdown()
        raise

    stats = RunStats(config, sink, owns_sink=owns_sink)
    stats._start(cancel)
    logger.info(
        "runstats collecting %s every %.3fs (cpu=%s mem=%s gc=%s)",
        config.measurement,
        config.interval,
        config.enable_cpu,
        config.enable_mem,
        config.enable_gc,
    )
    return stats
