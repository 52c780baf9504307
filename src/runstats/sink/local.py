"""Local file sink – writes points to JSONL files."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from ..exceptions import SinkNotReadyError
from .base import Point, Sink

logger = logging.getLogger(__name__)


class LocalSink(Sink):
    """Writes points to JSONL files on disk.

    One file per UTC day is created inside *output_dir*.
    """

    def __init__(self, output_dir: str | Path = "./runstats_data") -> None:
        self._output_dir = Path(output_dir)
        self._fh = None
        self._current_date: str | None = None

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def ready(self) -> None:
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SinkNotReadyError(f"cannot create {self._output_dir}: {exc}") from exc
        if not os.access(self._output_dir, os.W_OK):
            raise SinkNotReadyError(f"{self._output_dir} is not writable")
        logger.info("LocalSink ready → %s", self._output_dir)

    def _ensure_file(self) -> None:
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        if self._current_date != today or self._fh is None:
            if self._fh is not None:
                self._fh.close()
            self._output_dir.mkdir(parents=True, exist_ok=True)
            filepath = self._output_dir / f"points-{today}.jsonl"
            self._fh = open(filepath, "a", encoding="utf-8")  # noqa: SIM115
            self._current_date = today

    def write(self, point: Point) -> None:
        self._ensure_file()
        assert self._fh is not None
        self._fh.write(json.dumps(point.to_dict()) + "\n")
        self._fh.flush()

    def shutdown(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
        logger.info("LocalSink shut down")
