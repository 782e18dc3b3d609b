"""Queue boundary types shared by the fetch loop and the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class QueueMessage:
    """A message delivered by the queue service.

    ``receipt_handle`` is the acknowledgment token: it is only valid for the
    receive that produced it and is what ``delete`` consumes.
    """

    body: str
    receipt_handle: str
    message_id: str
    receive_count: int = 1


class QueueClient(Protocol):
    """Contract of the durable at-least-once queue.

    Implementations raise ``TransportError`` on failure. A message that is not
    deleted reappears after its visibility timeout.
    """

    def receive(
        self,
        max_batch: int,
        wait_seconds: int,
        visibility_timeout_seconds: int,
    ) -> list[QueueMessage]:
        ...

    def delete(self, receipt_handle: str) -> None:
        ...
