"""Order event models and envelope decoding."""

from libs.orders.envelope import (
    Decoded,
    DecodeResult,
    EnvelopeDecoder,
    PoisonDiscard,
)
from libs.orders.models import Item, Order, SNSEnvelope

__all__ = [
    "Item",
    "Order",
    "SNSEnvelope",
    "EnvelopeDecoder",
    "Decoded",
    "DecodeResult",
    "PoisonDiscard",
]
