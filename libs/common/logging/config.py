"""Logging configuration for the order processor.

Sets up structured JSON output on stdout with correlation ID injection.
``configure_logging()`` should be called once at service startup.

Example:
    >>> from libs.common.logging.config import configure_logging
    >>> logger = configure_logging(service_name="order_processor", log_level="INFO")
    >>> logger.info("processor_starting", extra={"context": {"concurrency": 4}})
"""

import logging
import sys

from libs.common.logging.context import get_correlation_id
from libs.common.logging.formatter import JSONFormatter


class CorrelationIDFilter(logging.Filter):
    """Logging filter that stamps the current correlation ID on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    include_context: bool = True,
) -> logging.Logger:
    """Configure structured JSON logging on the root logger.

    Existing root handlers are removed so repeated calls do not duplicate output.

    Args:
        service_name: Name of the service (e.g., "order_processor")
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_context: Whether to include context dict in output

    Returns:
        Configured root logger instance

    Raises:
        ValueError: If log_level is invalid
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter(service_name=service_name, include_context=include_context))
    handler.addFilter(CorrelationIDFilter())

    root_logger.addHandler(handler)
    return root_logger
