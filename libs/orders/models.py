"""
Pydantic models for order-created events.

Defines the payload published by the ingress service:
- Item: one order line
- Order: the immutable order recovered from a queue message
- SNSEnvelope: the pub/sub transport wrapper around the serialized order

Validation is structural only: a field must have the right JSON type, but its
value is not range checked. An order that parses is processed.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_STATUS = "pending"


class Item(BaseModel):
    """Single line of an order."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    product_id: str = Field(..., strict=True)
    quantity: int = Field(..., strict=True)
    price: float = Field(..., strict=True)


class Order(BaseModel):
    """Order as published by the ingress service.

    ``created_at`` is epoch milliseconds stamped at ingress; all latency
    telemetry is measured against it. A JSON ``null`` for ``items`` or
    ``status`` means the field was not set.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    order_id: str = Field(..., strict=True)
    customer_id: int = Field(..., strict=True)
    items: tuple[Item, ...] = ()
    created_at: int = Field(..., strict=True)
    status: str = Field(default=DEFAULT_STATUS, strict=True)

    @field_validator("items", mode="before")
    @classmethod
    def _null_items(cls, value: Any) -> Any:
        return () if value is None else value

    @field_validator("status", mode="before")
    @classmethod
    def _null_status(cls, value: Any) -> Any:
        return DEFAULT_STATUS if value is None else value


class SNSEnvelope(BaseModel):
    """SNS notification wrapper as delivered to an SQS subscriber.

    Only ``Message`` is required; the remaining SNS attributes are kept for
    logging when present.
    """

    model_config = ConfigDict(frozen=True, strict=True, extra="ignore", populate_by_name=True)

    message: str = Field(..., alias="Message")
    message_id: str | None = Field(default=None, alias="MessageId")
    topic_arn: str | None = Field(default=None, alias="TopicArn")
    type: str | None = Field(default=None, alias="Type")
