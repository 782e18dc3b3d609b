"""
Per-run latency telemetry buffer.

Pipelines append one ``MetricEvent`` per stage with ``record()``. Nothing
touches disk until ``flush()``, which runs once at shutdown after every
producer has stopped and writes the whole buffer as a CSV file.

File layout (one row per event):
    order_id,event_type,latency_ms,queue_depth,timestamp
    t1,fetched,12.0,1,1760783400012
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

import polars as pl

from libs.common.exceptions import FlushError

logger = logging.getLogger(__name__)

METRICS_SCHEMA = {
    "order_id": pl.Utf8,
    "event_type": pl.Utf8,
    "latency_ms": pl.Float64,
    "queue_depth": pl.Int64,
    "timestamp": pl.Int64,
}


class MetricStage(str, Enum):
    """Pipeline stages, in emission order."""

    FETCHED = "fetched"
    PROCESSED = "processed"
    COMPLETED = "completed"


@dataclass(frozen=True)
class MetricEvent:
    """One latency sample. ``timestamp_ms`` is the emission time (epoch ms)."""

    order_id: str
    stage: MetricStage
    latency_ms: float
    queue_depth: int
    timestamp_ms: int


def metrics_file_name(environment: str, run_started_at: datetime) -> str:
    """Deterministic file name for one processor run in one environment."""
    stamp = run_started_at.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")
    return f"processor_metrics_{environment}_{stamp}.csv"


class MetricsCollector:
    """
    Thread-safe append-only buffer of metric events.

    Attributes:
        environment: Environment label embedded in the file name
        output_path: Where ``flush()`` writes the CSV
    """

    def __init__(
        self,
        environment: str,
        output_dir: str | Path = ".",
        *,
        run_started_at: datetime | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.environment = environment
        started = run_started_at or datetime.now(UTC)
        self.output_path = Path(output_dir) / metrics_file_name(environment, started)
        self._clock = clock
        self._events: list[MetricEvent] = []
        self._lock = threading.Lock()
        self._flushed = False

    def record(
        self,
        order_id: str,
        stage: MetricStage | str,
        latency_ms: float,
        queue_depth: int,
    ) -> MetricEvent:
        """Append one event. In-memory only; safe for concurrent callers."""
        event = MetricEvent(
            order_id=order_id,
            stage=MetricStage(stage),
            latency_ms=float(latency_ms),
            queue_depth=queue_depth,
            timestamp_ms=int(self._clock() * 1000),
        )
        with self._lock:
            self._events.append(event)
        return event

    def snapshot(self) -> list[MetricEvent]:
        """Return a copy of the buffered events for inspection/testing."""
        with self._lock:
            return list(self._events)

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._events)

    @property
    def flushed(self) -> bool:
        return self._flushed

    def to_frame(self) -> pl.DataFrame:
        events = self.snapshot()
        return pl.DataFrame(
            {
                "order_id": [e.order_id for e in events],
                "event_type": [e.stage.value for e in events],
                "latency_ms": [e.latency_ms for e in events],
                "queue_depth": [e.queue_depth for e in events],
                "timestamp": [e.timestamp_ms for e in events],
            },
            schema=METRICS_SCHEMA,
        )

    def flush(self) -> Path:
        """Write the full buffer to ``output_path``.

        Written to a temporary sibling first and renamed, so a failed flush
        never leaves a truncated file behind.

        Returns:
            Path of the written file

        Raises:
            FlushError: If the file cannot be written, or flush already ran
        """
        if self._flushed:
            raise FlushError(str(self.output_path), "metrics already flushed for this run")
        self._flushed = True

        frame = self.to_frame()
        tmp_path = self.output_path.with_suffix(self.output_path.suffix + ".tmp")
        try:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            frame.write_csv(tmp_path)
            tmp_path.replace(self.output_path)
        except (OSError, pl.exceptions.PolarsError) as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            raise FlushError(str(self.output_path), str(e)) from e

        logger.info(
            "metrics_flushed",
            extra={"path": str(self.output_path), "rows": frame.height},
        )
        return self.output_path
