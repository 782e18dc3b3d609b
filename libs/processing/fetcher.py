"""
Fetch loop: drains the queue into the worker pool.

One thread runs ``FetchCoordinator.run()``. Each iteration issues a single
long-poll receive, then for every message blocks on a concurrency slot before
dispatching it. Blocking on the slot is the backpressure mechanism: the loop
never holds more received-but-unstarted messages than one batch, which keeps
in-flight work inside the visibility-timeout budget.

Cancellation is cooperative: ``stop_event`` is checked at the top of every
iteration and after every receive. In-flight pipelines are never interrupted.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from libs.common.exceptions import TransportError
from libs.processing.concurrency import ConcurrencyController
from libs.processing.metrics import messages_received_total, queue_errors_total
from libs.processing.pipeline import ProcessingPipeline
from libs.queue.models import QueueClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchSettings:
    """Receive parameters (SQS: MaxNumberOfMessages, WaitTimeSeconds, VisibilityTimeout)."""

    batch_size: int = 10
    wait_seconds: int = 20
    visibility_timeout_seconds: int = 60
    error_backoff_seconds: float = 2.0


class FetchCoordinator:
    """Polls the queue and hands messages to the pipeline through the pool."""

    def __init__(
        self,
        queue: QueueClient,
        controller: ConcurrencyController,
        pipeline: ProcessingPipeline,
        stop_event: threading.Event,
        settings: FetchSettings | None = None,
    ) -> None:
        self._queue = queue
        self._controller = controller
        self._pipeline = pipeline
        self._stop_event = stop_event
        self._settings = settings or FetchSettings()
        self.dispatched = 0

    def run(self) -> None:
        """Loop until ``stop_event`` is set."""
        logger.info(
            "fetch_loop_started",
            extra={
                "batch_size": self._settings.batch_size,
                "wait_seconds": self._settings.wait_seconds,
                "visibility_timeout_seconds": self._settings.visibility_timeout_seconds,
                "concurrency": self._controller.max_in_flight,
            },
        )
        while not self._stop_event.is_set():
            self.poll_once()
        logger.info("fetch_loop_stopped", extra={"dispatched": self.dispatched})

    def poll_once(self) -> int:
        """Run one receive/dispatch iteration.

        Returns:
            Number of messages dispatched to the pool
        """
        try:
            messages = self._queue.receive(
                self._settings.batch_size,
                self._settings.wait_seconds,
                self._settings.visibility_timeout_seconds,
            )
        except TransportError as e:
            queue_errors_total.labels(operation="receive").inc()
            logger.error(
                "receive_failed",
                extra={
                    "error": str(e),
                    "error_code": e.error_code,
                    "backoff_seconds": self._settings.error_backoff_seconds,
                },
            )
            # Interruptible sleep: a shutdown signal ends the backoff early.
            self._stop_event.wait(self._settings.error_backoff_seconds)
            return 0

        if not messages:
            return 0

        messages_received_total.inc(len(messages))
        if self._stop_event.is_set():
            # Left invisible; the queue redelivers them after the visibility timeout.
            logger.info("receive_after_shutdown_not_dispatched", extra={"count": len(messages)})
            return 0

        dispatched = 0
        for message in messages:
            self._controller.acquire()
            self._controller.submit(self._pipeline.handle, message)
            dispatched += 1
        self.dispatched += dispatched
        return dispatched
