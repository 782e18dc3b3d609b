"""
Envelope decoder for order-created queue messages.

A delivered message body has two layers:

1. the SNS transport wrapper, a JSON object whose ``Message`` field is a string
2. the serialized Order inside that string

Decoding never raises to the caller. ``EnvelopeDecoder.decode`` returns a
tagged result, ``Decoded`` or ``PoisonDiscard``, so the discard policy for
malformed input is an explicit branch in the pipeline.

Example:
    >>> decoder = EnvelopeDecoder()
    >>> result = decoder.decode(body)
    >>> if isinstance(result, PoisonDiscard):
    ...     queue.delete(receipt_handle)
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import ValidationError

from libs.common.exceptions import DecodeError
from libs.orders.models import Order, SNSEnvelope

ENVELOPE_STAGE = "envelope"
ORDER_STAGE = "order"

# Upper bound on how much of a validation error ends up in logs.
_MAX_REASON_LENGTH = 500


@dataclass(frozen=True)
class Decoded:
    """A message that decoded into a valid Order."""

    order: Order
    envelope_message_id: str | None = None


@dataclass(frozen=True)
class PoisonDiscard:
    """A message that must be deleted without processing."""

    stage: str
    reason: str


DecodeResult = Decoded | PoisonDiscard


def _summarize(error: ValidationError) -> str:
    parts = []
    for err in error.errors(include_url=False):
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)[:_MAX_REASON_LENGTH]


class EnvelopeDecoder:
    """Unwraps the SNS envelope and validates the inner Order."""

    def unwrap(self, body: str | bytes) -> SNSEnvelope:
        """Parse the outer transport wrapper.

        Raises:
            DecodeError: If the body is not a JSON object with a string ``Message``
        """
        try:
            return SNSEnvelope.model_validate_json(body)
        except ValidationError as e:
            raise DecodeError(ENVELOPE_STAGE, _summarize(e)) from e

    def parse_order(self, payload: str) -> Order:
        """Parse the inner serialized Order.

        Raises:
            DecodeError: If the payload is not a well-formed Order
        """
        try:
            return Order.model_validate_json(payload)
        except ValidationError as e:
            raise DecodeError(ORDER_STAGE, _summarize(e)) from e

    def decode_or_raise(self, body: str | bytes) -> Decoded:
        envelope = self.unwrap(body)
        order = self.parse_order(envelope.message)
        return Decoded(order=order, envelope_message_id=envelope.message_id)

    def decode(self, body: str | bytes) -> DecodeResult:
        """Decode a raw message body into a tagged result."""
        try:
            return self.decode_or_raise(body)
        except DecodeError as e:
            return PoisonDiscard(stage=e.stage, reason=e.reason)
