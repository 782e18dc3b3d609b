"""Work unit strategies executed once per accepted order."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol

from libs.orders.models import Order


class WorkUnit(Protocol):
    """Synchronous unit of work run inside one concurrency slot.

    Raising signals a failed attempt: the message is not acknowledged and
    comes back after its visibility timeout.
    """

    def execute(self, order: Order) -> None:
        ...


class SimulatedPaymentWork:
    """Stand-in for payment verification: blocks for a fixed duration."""

    def __init__(
        self,
        duration_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if duration_seconds < 0:
            raise ValueError("duration_seconds must be non-negative")
        self.duration_seconds = duration_seconds
        self._sleep = sleep

    def execute(self, order: Order) -> None:
        self._sleep(self.duration_seconds)
