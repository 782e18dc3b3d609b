"""
Shutdown coordination: stop fetching, drain, flush, exit.

State machine:

    RUNNING ──signal──▶ DRAINING ──drain() returns──▶ FLUSHING ──flush() returns──▶ TERMINATED

The signal handler only flips the state and sets the shared stop event; the
blocking steps run in ``finalize()`` on the main thread once the fetch loop
has returned. Flush happens strictly after drain, so it never races a
pipeline's ``record()`` call.
"""

from __future__ import annotations

import logging
import signal
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import FrameType

from libs.common.exceptions import FlushError
from libs.processing.concurrency import ConcurrencyController
from libs.processing.metrics_collector import MetricsCollector

logger = logging.getLogger(__name__)


class ShutdownState(str, Enum):
    RUNNING = "running"
    DRAINING = "draining"
    FLUSHING = "flushing"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class ShutdownReport:
    """Outcome of ``finalize()``.

    Attributes:
        drained: False when the drain timeout expired with work still in flight
        remaining_in_flight: Slots still held when flushing started
        metrics_path: Written metrics file, None if the flush failed
    """

    drained: bool
    remaining_in_flight: int
    metrics_path: Path | None


class ShutdownCoordinator:
    """Turns a termination signal into stop-fetch → drain → flush → exit."""

    def __init__(
        self,
        stop_event: threading.Event,
        controller: ConcurrencyController,
        collector: MetricsCollector,
        drain_timeout_seconds: float | None = None,
    ) -> None:
        self._stop_event = stop_event
        self._controller = controller
        self._collector = collector
        self._drain_timeout_seconds = drain_timeout_seconds
        # Reentrant: a signal handler can run on the main thread while it holds the lock.
        self._lock = threading.RLock()
        self._state = ShutdownState.RUNNING
        self.transitions: list[ShutdownState] = [ShutdownState.RUNNING]

    @property
    def state(self) -> ShutdownState:
        with self._lock:
            return self._state

    def _transition(self, new_state: ShutdownState) -> None:
        with self._lock:
            self._state = new_state
            self.transitions.append(new_state)
        logger.info("shutdown_state_changed", extra={"state": new_state.value})

    def request_shutdown(self, reason: str = "requested") -> bool:
        """Enter DRAINING and stop the fetch loop.

        Returns:
            True if this call started the shutdown, False if already underway
        """
        with self._lock:
            if self._state is not ShutdownState.RUNNING:
                already = True
            else:
                already = False
                self._state = ShutdownState.DRAINING
                self.transitions.append(ShutdownState.DRAINING)
        if already:
            logger.warning("shutdown_already_in_progress", extra={"reason": reason})
            return False

        logger.info(
            "shutdown_requested",
            extra={"reason": reason, "in_flight": self._controller.current_depth()},
        )
        self._stop_event.set()
        return True

    def handle_signal(self, signum: int, frame: FrameType | None) -> None:
        self.request_shutdown(reason=signal.Signals(signum).name)

    def install_signal_handlers(
        self, signals: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)
    ) -> None:
        """Route termination signals to ``handle_signal``. Main thread only."""
        for sig in signals:
            signal.signal(sig, self.handle_signal)

    def finalize(self) -> ShutdownReport:
        """Drain in-flight pipelines, flush metrics, and terminate.

        Safe to call when the fetch loop ended without a signal; the
        coordinator then enters DRAINING itself.
        """
        if self.state is ShutdownState.RUNNING:
            self.request_shutdown(reason="fetch_loop_exited")

        logger.info(
            "draining_in_flight",
            extra={
                "in_flight": self._controller.current_depth(),
                "timeout_seconds": self._drain_timeout_seconds,
            },
        )
        drained = self._controller.drain(timeout=self._drain_timeout_seconds)
        remaining = self._controller.current_depth()
        if not drained:
            logger.warning(
                "drain_timeout_expired",
                extra={"remaining_in_flight": remaining},
            )

        self._transition(ShutdownState.FLUSHING)
        metrics_path: Path | None
        try:
            metrics_path = self._collector.flush()
        except FlushError as e:
            metrics_path = None
            logger.error("metrics_flush_failed", extra={"path": e.path, "error": e.reason})

        self._controller.close(wait=drained)
        self._transition(ShutdownState.TERMINATED)
        return ShutdownReport(
            drained=drained,
            remaining_in_flight=remaining,
            metrics_path=metrics_path,
        )
