"""Structured logging for the order processor.

Usage:
    # At service startup
    from libs.common.logging import configure_logging
    configure_logging(service_name="order_processor", log_level="INFO")

    # Around per-message work
    from libs.common.logging import LogContext
    with LogContext(message.message_id):
        logger.info("order_completed", extra={"context": {"order_id": order.order_id}})
"""

from libs.common.logging.config import (
    CorrelationIDFilter,
    configure_logging,
)
from libs.common.logging.context import (
    LogContext,
    clear_correlation_id,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from libs.common.logging.formatter import JSONFormatter

__all__ = [
    "configure_logging",
    "CorrelationIDFilter",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "LogContext",
    "JSONFormatter",
]
