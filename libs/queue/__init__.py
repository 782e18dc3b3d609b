"""Durable queue boundary: message type, client contract and SQS implementation."""

from libs.queue.models import QueueClient, QueueMessage
from libs.queue.sqs_client import SQSQueueClient

__all__ = [
    "QueueClient",
    "QueueMessage",
    "SQSQueueClient",
]
