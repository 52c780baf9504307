"""Configuration loading, defaulting and validation for runstats."""

from __future__ import annotations

import dataclasses
import os
import socket
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError

DEFAULT_HOST = "http://localhost:4318"
DEFAULT_ORG = "metrics"
DEFAULT_BUCKET = "python"
DEFAULT_MEASUREMENT = "python.runtime"
DEFAULT_INTERVAL = 10.0
UNKNOWN_HOST = "unknown"

MODES = ("online", "local")


@dataclass(frozen=True)
class Config:
    """Collector settings.

    Zero values mean "use the default"; see :func:`resolve_config`.
    """

    # OTLP/HTTP endpoint of the metrics backend.
    host: str = ""
    token: str = ""
    org: str = ""
    bucket: str = ""
    # Defaults to "python.runtime.<hostname>".
    measurement: str = ""
    # Seconds between ticks. Defaults to 10.
    interval: float = 0.0
    disable_cpu: bool = False
    disable_mem: bool = False
    # GC statistics also require memory statistics to be enabled.
    disable_gc: bool = False
    mode: str = "online"
    output_dir: str = "./runstats_data"
    # Extra OTLP headers, stored read-only.
    headers: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def enable_cpu(self) -> bool:
        return not self.disable_cpu

    @property
    def enable_mem(self) -> bool:
        return not self.disable_mem

    @property
    def enable_gc(self) -> bool:
        return not self.disable_mem and not self.disable_gc


DEFAULT_CONFIG = Config()


def hostname() -> str:
    """Return this host's name, or "unknown" if it cannot be looked up."""
    try:
        name = socket.gethostname()
    except OSError:
        return UNKNOWN_HOST
    return name or UNKNOWN_HOST


def resolve_config(config: Config | None = None) -> Config:
    """Return a copy of *config* with every unset field filled in.

    Resolving an already resolved config returns an equal config.
    """
    if config is None:
        config = DEFAULT_CONFIG

    changes: dict[str, Any] = {}
    if not config.host:
        changes["host"] = DEFAULT_HOST
    if not config.org:
        changes["org"] = DEFAULT_ORG
    if not config.bucket:
        changes["bucket"] = DEFAULT_BUCKET
    if not config.measurement:
        changes["measurement"] = f"{DEFAULT_MEASUREMENT}.{hostname()}"
    if not config.interval:
        changes["interval"] = DEFAULT_INTERVAL

    if not changes:
        return config
    return dataclasses.replace(config, **changes)


def validate_config(config: Config) -> None:
    """Raise :class:`ConfigError` if a resolved *config* cannot be used."""
    if config.interval <= 0:
        raise ConfigError(f"interval must be positive, got {config.interval!r}")
    if not config.measurement:
        raise ConfigError("measurement name is empty")
    if config.mode not in MODES:
        raise ConfigError(f"unknown mode {config.mode!r}, expected one of {MODES}")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides using RUNSTATS_ prefix."""
    env_map = {
        "RUNSTATS_HOST": "host",
        "RUNSTATS_TOKEN": "token",
        "RUNSTATS_ORG": "org",
        "RUNSTATS_BUCKET": "bucket",
        "RUNSTATS_MEASUREMENT": "measurement",
        "RUNSTATS_INTERVAL": "interval",
        "RUNSTATS_MODE": "mode",
        "RUNSTATS_OUTPUT_DIR": "output_dir",
        "RUNSTATS_DISABLE_CPU": "disable_cpu",
        "RUNSTATS_DISABLE_MEM": "disable_mem",
        "RUNSTATS_DISABLE_GC": "disable_gc",
    }
    for env_key, key in env_map.items():
        value = os.environ.get(env_key)
        if value is None:
            continue
        if key == "interval":
            data[key] = float(value)
        elif key.startswith("disable_"):
            data[key] = _parse_bool(value)
        else:
            data[key] = value
    return data


def _dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a raw dictionary to a Config, dropping unknown keys."""
    known = {k: v for k, v in data.items() if k in Config.__dataclass_fields__}
    if known.get("interval") is not None:
        known["interval"] = float(known["interval"])
    else:
        known.pop("interval", None)
    if known.get("headers") is not None:
        known["headers"] = {str(k): str(v) for k, v in known["headers"].items()}
    else:
        known.pop("headers", None)
    return Config(**known)


def load_config(path: str | Path | None = None) -> Config:
    """Load an unresolved configuration from a YAML file with environment overrides.

    Looks for ``runstats.yaml`` in the current directory if *path* is None.
    A missing file yields the defaults.
    """
    data: dict[str, Any] = {}
    if path is None:
        path = Path("runstats.yaml")
    else:
        path = Path(path)

    if path.exists():
        with open(path, encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh)
            if isinstance(loaded, dict):
                data = loaded

    data = _apply_env_overrides(data)
    return _dict_to_config(data)
