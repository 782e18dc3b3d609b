"""
Shared fixtures for order processor tests.

Provides an in-memory queue standing in for SQS and helpers that build
SNS-wrapped order messages the way the ingress service publishes them.
"""

import json
import threading
from collections import deque
from collections.abc import Callable
from typing import Any

import pytest

from libs.queue.models import QueueMessage


class FakeQueue:
    """Thread-safe scripted queue.

    ``batches`` are returned by successive ``receive`` calls. An Exception
    instance in the script is raised instead of returned. When the script
    runs out, ``on_empty`` is invoked (if set) and an empty batch returned.
    """

    def __init__(
        self,
        batches: list[Any] | None = None,
        on_empty: Callable[[], None] | None = None,
    ) -> None:
        self._batches: deque[Any] = deque(batches or [])
        self._lock = threading.Lock()
        self.on_empty = on_empty
        self.deleted: list[str] = []
        self.receive_calls: list[tuple[int, int, int]] = []
        self.fail_deletes: Exception | None = None

    def receive(
        self, max_batch: int, wait_seconds: int, visibility_timeout_seconds: int
    ) -> list[QueueMessage]:
        with self._lock:
            self.receive_calls.append((max_batch, wait_seconds, visibility_timeout_seconds))
            batch = self._batches.popleft() if self._batches else None
        if batch is None:
            if self.on_empty is not None:
                self.on_empty()
            return []
        if isinstance(batch, Exception):
            raise batch
        return list(batch)

    def delete(self, receipt_handle: str) -> None:
        if self.fail_deletes is not None:
            raise self.fail_deletes
        with self._lock:
            self.deleted.append(receipt_handle)


def sns_body(payload: Any, message_id: str = "sns-1") -> str:
    """Wrap an order payload (dict or raw string) in an SNS notification."""
    inner = payload if isinstance(payload, str) else json.dumps(payload)
    return json.dumps(
        {
            "Type": "Notification",
            "MessageId": message_id,
            "TopicArn": "arn:aws:sns:us-east-1:000000000000:orders",
            "Message": inner,
        }
    )


def order_payload(order_id: str = "t1", created_at: int = 1_000_000, **overrides: Any) -> dict:
    payload = {
        "order_id": order_id,
        "customer_id": 42,
        "items": [{"product_id": "p-1", "quantity": 2, "price": 9.5}],
        "created_at": created_at,
        "status": "pending",
    }
    payload.update(overrides)
    return payload


def make_message(body: str, index: int = 0) -> QueueMessage:
    return QueueMessage(
        body=body,
        receipt_handle=f"rh-{index}",
        message_id=f"m-{index}",
    )


@pytest.fixture()
def fake_queue_factory() -> type[FakeQueue]:
    return FakeQueue


@pytest.fixture()
def fake_queue() -> FakeQueue:
    return FakeQueue()


@pytest.fixture()
def build_sns_body() -> Callable[..., str]:
    return sns_body


@pytest.fixture()
def build_order_payload() -> Callable[..., dict]:
    return order_payload


@pytest.fixture()
def build_message() -> Callable[..., QueueMessage]:
    return make_message


@pytest.fixture()
def valid_message() -> QueueMessage:
    """A well-formed order message created at epoch ms 1_000_000."""
    return make_message(sns_body(order_payload()), index=1)
