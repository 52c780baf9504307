"""Custom exceptions used by the runstats package."""


class RunstatsError(RuntimeError):
    """Base class for runstats errors."""


class ConfigError(RunstatsError):
    """Raised when a resolved configuration cannot be used to start collecting."""


class SinkNotReadyError(RunstatsError):
    """Raised when the metrics sink is unreachable at start-up."""


class SchedulerError(RunstatsError):
    """Raised on invalid scheduler lifecycle transitions."""
