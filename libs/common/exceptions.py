"""
Exception hierarchy for the order processor.

This module defines the custom exceptions raised by the queue-consuming
processing engine, organized in a hierarchy so callers can handle transport,
decoding and persistence failures separately.
"""


class OrderProcessorError(Exception):
    """
    Base exception for all order processor errors.

    Example:
        >>> try:
        ...     processor.run()
        ... except OrderProcessorError as e:
        ...     logger.error(f"Processor error: {e}")
    """

    pass


class ConfigurationError(OrderProcessorError):
    """
    Raised when required startup configuration is missing or invalid.

    This is the only fatal condition of the service: it aborts before the
    fetch loop starts.

    Example:
        >>> if not settings.sqs_queue_url:
        ...     raise ConfigurationError("SQS_QUEUE_URL must be set")
    """

    pass


class TransportError(OrderProcessorError):
    """
    Raised when a call to the queue service fails.

    Receive failures are retried by the fetch loop after a fixed backoff.
    Delete failures are logged only; the queue's visibility timeout redelivers
    the message.

    Attributes:
        operation: Queue operation that failed ("receive", "delete", "verify")
        error_code: AWS error code when available
    """

    def __init__(self, operation: str, reason: str, error_code: str | None = None) -> None:
        self.operation = operation
        self.reason = reason
        self.error_code = error_code
        message = f"Queue {operation} failed: {reason}"
        if error_code:
            message = f"{message} (code={error_code})"
        super().__init__(message)


class DecodeError(OrderProcessorError):
    """
    Raised when a message body cannot be decoded into an Order.

    Attributes:
        stage: "envelope" when the outer pub/sub wrapper is malformed,
            "order" when the inner payload is malformed
        reason: Human readable description of the failure
    """

    def __init__(self, stage: str, reason: str) -> None:
        self.stage = stage
        self.reason = reason
        super().__init__(f"Malformed {stage}: {reason}")


class FlushError(OrderProcessorError):
    """
    Raised when the metrics buffer cannot be written to durable storage.

    Reported at shutdown but never blocks process exit.
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to flush metrics to {path}: {reason}")
