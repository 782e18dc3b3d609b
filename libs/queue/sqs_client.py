"""
Amazon SQS client for the order queue.

Wraps the boto3 SQS client behind the ``QueueClient`` contract used by the
processing engine.

Architecture:
    - boto3 client shared read-only across worker threads (each call is an
      independent request; botocore clients are thread-safe)
    - Optional endpoint override for LocalStack / emulators
    - Botocore failures translated into ``TransportError``
    - Startup ``verify()`` retried on transient AWS errors only

Usage Example:
    >>> client = SQSQueueClient(queue_url, region_name="us-east-1")
    >>> client.verify()
    >>> for message in client.receive(10, 20, 60):
    ...     client.delete(message.receipt_handle)
"""

import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from libs.common.exceptions import TransportError
from libs.queue.models import QueueMessage

logger = logging.getLogger(__name__)

_TRANSIENT_ERROR_CODES = frozenset(
    {
        "ThrottlingException",
        "RequestThrottled",
        "ServiceUnavailable",
        "InternalError",
        "InternalFailure",
    }
)


def _is_transient_aws_error(exception: BaseException) -> bool:
    """
    Check if an AWS exception is transient and should be retried.

    Network/SDK errors (BotoCoreError) and throttling/availability error codes
    are transient. Errors such as ``AWS.SimpleQueueService.NonExistentQueue``
    or ``AccessDenied`` are permanent.
    """
    if isinstance(exception, BotoCoreError):
        return True
    if isinstance(exception, ClientError):
        error_code = exception.response.get("Error", {}).get("Code", "")
        return error_code in _TRANSIENT_ERROR_CODES
    return False


def _error_code(exception: BaseException) -> str | None:
    if isinstance(exception, ClientError):
        return exception.response.get("Error", {}).get("Code")
    return None


class SQSQueueClient:
    """SQS implementation of ``QueueClient``."""

    def __init__(
        self,
        queue_url: str,
        *,
        region_name: str = "us-east-1",
        endpoint_url: str | None = None,
        max_pool_connections: int = 10,
    ) -> None:
        """
        Args:
            queue_url: Full SQS queue URL
            region_name: AWS region used for signing
            endpoint_url: Custom endpoint (e.g. "http://localstack:4566"); None for AWS
            max_pool_connections: HTTP pool size; should cover the worker count
                plus the fetch loop
        """
        self._queue_url = queue_url
        client_kwargs: dict[str, Any] = {
            "region_name": region_name,
            "config": Config(
                max_pool_connections=max_pool_connections,
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        }
        if endpoint_url:
            client_kwargs["endpoint_url"] = endpoint_url
            logger.info(
                "Initializing SQS client with custom endpoint",
                extra={"endpoint": endpoint_url, "region": region_name},
            )
        self._client = boto3.client("sqs", **client_kwargs)

    @property
    def queue_url(self) -> str:
        return self._queue_url

    def receive(
        self,
        max_batch: int,
        wait_seconds: int,
        visibility_timeout_seconds: int,
    ) -> list[QueueMessage]:
        """Long-poll for up to ``max_batch`` messages.

        Raises:
            TransportError: If the ReceiveMessage call fails
        """
        try:
            response = self._client.receive_message(
                QueueUrl=self._queue_url,
                MaxNumberOfMessages=max_batch,
                WaitTimeSeconds=wait_seconds,
                VisibilityTimeout=visibility_timeout_seconds,
                AttributeNames=["ApproximateReceiveCount"],
            )
        except (ClientError, BotoCoreError) as e:
            raise TransportError("receive", str(e), _error_code(e)) from e

        messages = []
        for raw in response.get("Messages", []):
            attributes = raw.get("Attributes", {})
            messages.append(
                QueueMessage(
                    body=raw.get("Body", ""),
                    receipt_handle=raw["ReceiptHandle"],
                    message_id=raw.get("MessageId", ""),
                    receive_count=int(attributes.get("ApproximateReceiveCount", 1)),
                )
            )
        return messages

    def delete(self, receipt_handle: str) -> None:
        """Acknowledge a message.

        Raises:
            TransportError: If the DeleteMessage call fails
        """
        try:
            self._client.delete_message(QueueUrl=self._queue_url, ReceiptHandle=receipt_handle)
        except (ClientError, BotoCoreError) as e:
            raise TransportError("delete", str(e), _error_code(e)) from e

    def verify(self) -> dict[str, str]:
        """Check the queue is reachable with the configured credentials.

        Returns:
            Queue attributes reported by SQS

        Raises:
            TransportError: If the queue cannot be reached after retries
        """
        try:
            return self._get_attributes_with_retry()
        except (ClientError, BotoCoreError) as e:
            raise TransportError("verify", str(e), _error_code(e)) from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception(_is_transient_aws_error),
        reraise=True,
    )
    def _get_attributes_with_retry(self) -> dict[str, str]:
        response = self._client.get_queue_attributes(
            QueueUrl=self._queue_url,
            AttributeNames=["ApproximateNumberOfMessages", "VisibilityTimeout"],
        )
        attributes: dict[str, str] = response.get("Attributes", {})
        logger.info(
            "SQS queue verified",
            extra={
                "queue_url": self._queue_url,
                "approximate_messages": attributes.get("ApproximateNumberOfMessages"),
            },
        )
        return attributes
