"""
Per-message processing pipeline.

Runs on a worker thread while the message holds a concurrency slot:

    decode ──poison──▶ delete, no telemetry
       │
       ▼
    record fetched ─▶ work unit ─▶ record processed ─▶ record completed ─▶ delete

All three metric events of one order are emitted from the same thread, so
per-order stage ordering needs no extra coordination. Releasing the slot is
the caller's job (see ``ConcurrencyController.submit``).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum

from libs.common.exceptions import TransportError
from libs.common.logging import LogContext
from libs.orders.envelope import EnvelopeDecoder, PoisonDiscard
from libs.orders.models import Order
from libs.processing.metrics import (
    orders_completed_total,
    poison_messages_total,
    queue_errors_total,
    stage_latency_seconds,
    work_failures_total,
)
from libs.processing.metrics_collector import MetricsCollector, MetricStage
from libs.processing.work import WorkUnit
from libs.queue.models import QueueClient, QueueMessage

logger = logging.getLogger(__name__)


class PipelineOutcome(str, Enum):
    COMPLETED = "completed"
    DISCARDED = "discarded"
    WORK_FAILED = "work_failed"


class ProcessingPipeline:
    """Executes one message end to end and emits its metric events."""

    def __init__(
        self,
        queue: QueueClient,
        decoder: EnvelopeDecoder,
        work: WorkUnit,
        collector: MetricsCollector,
        depth_probe: Callable[[], int],
        *,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            queue: Queue client used to acknowledge messages
            decoder: Envelope decoder
            work: Work unit strategy executed per order
            collector: Metric event sink
            depth_probe: Returns the live in-flight count (queue_depth telemetry)
            clock: Wall clock in epoch seconds; latencies against created_at use it
            monotonic: Monotonic clock for measuring the work duration
        """
        self._queue = queue
        self._decoder = decoder
        self._work = work
        self._collector = collector
        self._depth_probe = depth_probe
        self._clock = clock
        self._monotonic = monotonic

    def handle(self, message: QueueMessage) -> PipelineOutcome:
        fetched_at_ms = self._now_ms()
        with LogContext(message.message_id or None):
            result = self._decoder.decode(message.body)
            if isinstance(result, PoisonDiscard):
                self._discard(message, result)
                return PipelineOutcome.DISCARDED
            return self._process(message, result.order, fetched_at_ms)

    def _process(self, message: QueueMessage, order: Order, fetched_at_ms: int) -> PipelineOutcome:
        queue_latency_ms = fetched_at_ms - order.created_at
        self._record(order.order_id, MetricStage.FETCHED, queue_latency_ms)
        logger.info(
            "order_processing",
            extra={
                "order_id": order.order_id,
                "customer_id": order.customer_id,
                "queue_latency_ms": queue_latency_ms,
                "receive_count": message.receive_count,
            },
        )

        work_started = self._monotonic()
        try:
            self._work.execute(order)
        except Exception:
            work_failures_total.inc()
            logger.exception(
                "order_work_failed",
                extra={"order_id": order.order_id, "receive_count": message.receive_count},
            )
            return PipelineOutcome.WORK_FAILED
        process_latency_ms = (self._monotonic() - work_started) * 1000
        self._record(order.order_id, MetricStage.PROCESSED, process_latency_ms)

        end_to_end_ms = self._now_ms() - order.created_at
        self._record(order.order_id, MetricStage.COMPLETED, end_to_end_ms)
        orders_completed_total.inc()
        logger.info(
            "order_completed",
            extra={
                "order_id": order.order_id,
                "process_latency_ms": round(process_latency_ms),
                "total_latency_ms": self._now_ms() - fetched_at_ms,
                "end_to_end_ms": end_to_end_ms,
            },
        )

        self._delete(message, reason="processed")
        return PipelineOutcome.COMPLETED

    def _discard(self, message: QueueMessage, poison: PoisonDiscard) -> None:
        poison_messages_total.labels(stage=poison.stage).inc()
        logger.warning(
            "poison_message_discarded",
            extra={
                "stage": poison.stage,
                "reason": poison.reason,
                "message_id": message.message_id,
                "body_preview": message.body[:200],
            },
        )
        self._delete(message, reason="poison")

    def _delete(self, message: QueueMessage, *, reason: str) -> None:
        # Not retried: an undeleted message is redelivered after its visibility timeout.
        try:
            self._queue.delete(message.receipt_handle)
        except TransportError as e:
            queue_errors_total.labels(operation="delete").inc()
            logger.error(
                "message_delete_failed",
                extra={
                    "message_id": message.message_id,
                    "reason": reason,
                    "error": str(e),
                    "error_code": e.error_code,
                },
            )

    def _record(self, order_id: str, stage: MetricStage, latency_ms: float) -> None:
        self._collector.record(order_id, stage, latency_ms, self._depth_probe())
        stage_latency_seconds.labels(stage=stage.value).observe(max(latency_ms, 0) / 1000)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)
