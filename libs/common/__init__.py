"""Common utilities and exceptions."""

from libs.common.exceptions import (
    ConfigurationError,
    DecodeError,
    FlushError,
    OrderProcessorError,
    TransportError,
)

__all__ = [
    "OrderProcessorError",
    "ConfigurationError",
    "TransportError",
    "DecodeError",
    "FlushError",
]
