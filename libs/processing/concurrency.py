"""
Bounded worker pool for in-flight pipelines.

The controller owns the only shared counter of the engine: the number of
messages currently holding a slot. That value doubles as the ``queue_depth``
telemetry snapshot.

Slot protocol:
    controller.acquire()            # blocks while all N slots are taken
    controller.submit(task, *args)  # runs on a pool thread, slot released after
    ...
    controller.drain()              # shutdown only: wait for the counter to hit 0
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from libs.processing.metrics import in_flight_orders

logger = logging.getLogger(__name__)


class ConcurrencyController:
    """Bounds simultaneous pipelines to ``max_in_flight``.

    Thread Safety:
        acquire/release/current_depth/drain may be called from any thread.
        The counter is only changed while holding ``_condition``.
    """

    def __init__(self, max_in_flight: int, thread_name_prefix: str = "order-worker") -> None:
        if max_in_flight <= 0:
            raise ValueError("max_in_flight must be positive")

        self._max_in_flight = max_in_flight
        self._slots = threading.BoundedSemaphore(max_in_flight)
        self._condition = threading.Condition()
        self._in_flight = 0
        self._executor = ThreadPoolExecutor(
            max_workers=max_in_flight, thread_name_prefix=thread_name_prefix
        )

    @property
    def max_in_flight(self) -> int:
        return self._max_in_flight

    def acquire(self) -> None:
        """Block until a slot is free, then reserve it."""
        self._slots.acquire()
        with self._condition:
            self._in_flight += 1
            in_flight_orders.set(self._in_flight)

    def release(self) -> None:
        """Free a slot reserved by ``acquire``.

        Raises:
            RuntimeError: If no slot is currently held
        """
        with self._condition:
            if self._in_flight == 0:
                raise RuntimeError("release() called without a held slot")
            self._in_flight -= 1
            in_flight_orders.set(self._in_flight)
            self._condition.notify_all()
        self._slots.release()

    def current_depth(self) -> int:
        """Return the number of slots currently held."""
        with self._condition:
            return self._in_flight

    def submit(self, task: Callable[..., Any], *args: Any) -> Future[Any]:
        """Run ``task`` on the pool; the caller must already hold a slot.

        The slot is released when the task returns or raises. Exceptions are
        logged here since nobody joins the returned future.
        """

        def _run() -> Any:
            try:
                return task(*args)
            except Exception:
                logger.exception("pipeline_task_crashed")
                raise
            finally:
                self.release()

        try:
            return self._executor.submit(_run)
        except RuntimeError:
            # Executor already shut down: the slot would otherwise leak.
            self.release()
            raise

    def drain(self, timeout: float | None = None) -> bool:
        """Block until no slot is held.

        Args:
            timeout: Maximum seconds to wait; None waits indefinitely

        Returns:
            True if the pool drained, False if the timeout expired first
        """
        with self._condition:
            return self._condition.wait_for(lambda: self._in_flight == 0, timeout=timeout)

    def close(self, wait: bool = True) -> None:
        """Stop the worker threads. Call after ``drain``."""
        self._executor.shutdown(wait=wait)
