"""
Order processor entrypoint.

Validates configuration, verifies the queue is reachable, optionally exposes
Prometheus metrics, then runs the fetch loop until SIGINT/SIGTERM and exits
after in-flight orders are drained and metrics are flushed.
"""

from __future__ import annotations

import logging
import os
import sys

from prometheus_client import start_http_server

from apps.order_processor.processor import OrderProcessor
from config.settings import ProcessorSettings, load_settings
from libs.common.exceptions import ConfigurationError, TransportError
from libs.common.logging import configure_logging
from libs.queue.sqs_client import SQSQueueClient

SERVICE_NAME = "order_processor"

logger = logging.getLogger(__name__)


def _load_settings_or_exit() -> ProcessorSettings:
    """Load settings or exit with status 1 before any queue traffic."""
    try:
        return load_settings()
    except ConfigurationError as exc:
        logger.error("processor_startup_failed", extra={"reason": str(exc)})
        sys.exit(1)


def build_queue_client(settings: ProcessorSettings) -> SQSQueueClient:
    return SQSQueueClient(
        settings.sqs_queue_url,
        region_name=settings.aws_region,
        endpoint_url=settings.aws_endpoint,
        # Workers plus the fetch loop share the client's connection pool.
        max_pool_connections=settings.processor_concurrency + 1,
    )


def main() -> None:
    """Processor entrypoint - validates env and runs until signalled."""
    # Default level until settings (env or .env) are validated
    configure_logging(service_name=SERVICE_NAME)
    settings = _load_settings_or_exit()
    configure_logging(service_name=SERVICE_NAME, log_level=settings.log_level)

    queue = build_queue_client(settings)

    # Verify SQS connectivity before starting the fetch loop
    try:
        queue.verify()
    except TransportError as exc:
        logger.error("queue_connection_failed", extra={"error": str(exc)})
        sys.exit(1)

    if settings.metrics_port is not None:
        start_http_server(settings.metrics_port)
        logger.info("prometheus_endpoint_started", extra={"port": settings.metrics_port})

    processor = OrderProcessor(settings, queue)
    processor.shutdown.install_signal_handlers()
    logger.info("processor_ready", extra={"pid": os.getpid()})
    report = processor.run()

    if not report.drained:
        # Pool threads still running would otherwise keep the interpreter alive.
        logging.shutdown()
        os._exit(0)


if __name__ == "__main__":
    main()
