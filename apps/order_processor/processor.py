"""Wires the processing engine together from settings."""

from __future__ import annotations

import logging
import threading

from config.settings import ProcessorSettings
from libs.orders.envelope import EnvelopeDecoder
from libs.processing.concurrency import ConcurrencyController
from libs.processing.fetcher import FetchCoordinator, FetchSettings
from libs.processing.metrics_collector import MetricsCollector
from libs.processing.pipeline import ProcessingPipeline
from libs.processing.shutdown import ShutdownCoordinator, ShutdownReport
from libs.processing.work import SimulatedPaymentWork, WorkUnit
from libs.queue.models import QueueClient

logger = logging.getLogger(__name__)


class OrderProcessor:
    """One processor run: fetch loop plus bounded worker pool.

    ``run()`` blocks in the fetch loop until shutdown is requested, then
    drains and flushes before returning the shutdown report.
    """

    def __init__(
        self,
        settings: ProcessorSettings,
        queue: QueueClient,
        *,
        work: WorkUnit | None = None,
        collector: MetricsCollector | None = None,
    ) -> None:
        self.settings = settings
        self.stop_event = threading.Event()
        self.controller = ConcurrencyController(settings.processor_concurrency)
        self.collector = collector or MetricsCollector(
            settings.environment, output_dir=settings.metrics_dir
        )
        self.pipeline = ProcessingPipeline(
            queue=queue,
            decoder=EnvelopeDecoder(),
            work=work or SimulatedPaymentWork(settings.paymentsim_seconds),
            collector=self.collector,
            depth_probe=self.controller.current_depth,
        )
        self.fetcher = FetchCoordinator(
            queue=queue,
            controller=self.controller,
            pipeline=self.pipeline,
            stop_event=self.stop_event,
            settings=FetchSettings(
                batch_size=settings.receive_batch_size,
                wait_seconds=settings.receive_wait_seconds,
                visibility_timeout_seconds=settings.visibility_timeout_seconds,
                error_backoff_seconds=settings.receive_backoff_seconds,
            ),
        )
        self.shutdown = ShutdownCoordinator(
            stop_event=self.stop_event,
            controller=self.controller,
            collector=self.collector,
            drain_timeout_seconds=settings.drain_timeout_seconds,
        )

    def run(self) -> ShutdownReport:
        logger.info(
            "processor_starting",
            extra={
                "queue_url": self.settings.sqs_queue_url,
                "environment": self.settings.environment,
                "concurrency": self.settings.processor_concurrency,
                "paymentsim_seconds": self.settings.paymentsim_seconds,
                "metrics_path": str(self.collector.output_path),
            },
        )
        try:
            self.fetcher.run()
        finally:
            report = self.shutdown.finalize()
        logger.info(
            "processor_shutdown_complete",
            extra={
                "drained": report.drained,
                "metrics_path": str(report.metrics_path) if report.metrics_path else None,
                "events_recorded": self.collector.size,
            },
        )
        return report
