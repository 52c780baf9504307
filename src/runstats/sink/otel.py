"""OpenTelemetry sink – pushes runtime points via OTLP/HTTP."""

from __future__ import annotations

import logging
import socket
from typing import Any
from urllib.parse import urlsplit

from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource

from ..config import Config
from ..exceptions import ConfigError, SinkNotReadyError
from .base import Point, Sink

logger = logging.getLogger(__name__)

READY_TIMEOUT = 5.0


def _endpoint_address(host: str) -> tuple[str, int]:
    """Split an endpoint URL into the (hostname, port) to connect to."""
    url = host if "://" in host else f"http://{host}"
    parts = urlsplit(url)
    try:
        port = parts.port
    except ValueError as exc:
        raise ConfigError(f"invalid endpoint {host!r}: {exc}") from exc
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ConfigError(f"invalid endpoint {host!r}")
    if port is None:
        port = 443 if parts.scheme == "https" else 80
    return parts.hostname, port


class OtelSink(Sink):
    """Records each point's fields as OpenTelemetry gauges.

    Field names become gauge names, the measurement becomes the service name
    of the resource, and the point's tags become gauge attributes. The SDK's
    ``PeriodicExportingMetricReader`` flushes to ``<host>/v1/metrics`` on its
    own thread, so export failures are logged by the SDK rather than raised
    from :meth:`write`. Gauges carry the export time, not the point timestamp.
    """

    def __init__(self, config: Config, reader: MetricReader | None = None) -> None:
        self._config = config
        self._address = _endpoint_address(config.host)

        resource = Resource.create({
            SERVICE_NAME: config.measurement,
            "runstats.org": config.org,
            "runstats.bucket": config.bucket,
        })

        if reader is None:
            headers = dict(config.headers)
            if config.token:
                headers["Authorization"] = f"Bearer {config.token}"
            exporter_kwargs: dict[str, Any] = {
                "endpoint": f"{config.host.rstrip('/')}/v1/metrics",
            }
            if headers:
                exporter_kwargs["headers"] = headers
            reader = PeriodicExportingMetricReader(
                OTLPMetricExporter(**exporter_kwargs),
                export_interval_millis=config.interval * 1000,
            )

        self._provider = MeterProvider(resource=resource, metric_readers=[reader])
        self._meter = self._provider.get_meter("runstats")
        self._gauges: dict[str, Any] = {}

        logger.info(
            "OtelSink initialized → %s (measurement=%s)",
            config.host,
            config.measurement,
        )

    def ready(self) -> None:
        try:
            with socket.create_connection(self._address, timeout=READY_TIMEOUT):
                pass
        except OSError as exc:
            raise SinkNotReadyError(f"cannot reach {self._config.host}: {exc}") from exc

    def _get_gauge(self, name: str) -> Any:
        if name not in self._gauges:
            self._gauges[name] = self._meter.create_gauge(name=name)
        return self._gauges[name]

    def write(self, point: Point) -> None:
        attributes = dict(point.tags)
        for name, value in point.fields.items():
            self._get_gauge(name).set(value, attributes=attributes)

    @property
    def shutdown_timeout_millis(self) -> float:
        """Budget for the final export, half the collection interval."""
        return self._config.interval * 500

    def shutdown(self) -> None:
        self._provider.shutdown(timeout_millis=self.shutdown_timeout_millis)
        logger.info("OtelSink shut down")
