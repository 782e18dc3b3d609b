"""Correlation ID context for per-message log grouping.

Every message handled by the processing pipeline runs inside a
``LogContext`` keyed by the queue message ID, so all log lines emitted
while handling that message share one ``correlation_id``.

Example:
    >>> from libs.common.logging.context import LogContext, get_correlation_id
    >>> with LogContext("msg-123"):
    ...     get_correlation_id()
    'msg-123'
"""

import contextvars
import uuid
from types import TracebackType

# Worker threads each start from an empty context, so the value never leaks
# between concurrently processed messages.
_correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def generate_correlation_id() -> str:
    """Generate a new UUID4 correlation ID."""
    return str(uuid.uuid4())


def get_correlation_id() -> str | None:
    """Return the correlation ID of the current context, if any."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context.

    Raises:
        ValueError: If correlation_id is empty
    """
    if not correlation_id:
        raise ValueError("Correlation ID cannot be empty")
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Remove the correlation ID from the current context."""
    _correlation_id_var.set(None)


class LogContext:
    """Context manager scoping a correlation ID to a block of code.

    The previous value is restored on exit, which matters when a pool thread
    is reused for the next message.

    Args:
        correlation_id: ID to set. If None, a new one is generated.
    """

    def __init__(self, correlation_id: str | None = None) -> None:
        self.correlation_id = correlation_id or generate_correlation_id()
        self.previous_correlation_id: str | None = None

    def __enter__(self) -> str:
        self.previous_correlation_id = get_correlation_id()
        set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self.previous_correlation_id is not None:
            set_correlation_id(self.previous_correlation_id)
        else:
            clear_correlation_id()
