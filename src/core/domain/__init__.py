"""
Domain models and value objects.

Contains fundamental domain entities like Order, SellerOffer, OfferMessage,
ApprovalEvent, Confirmation and the VAT enums.
"""

from src.core.domain.confirmation import Confirmation
from src.core.domain.messages import (
    ApprovalAction,
    ApprovalEvent,
    OfferMessage,
    SentMessage,
    decode_custom_id,
    encode_custom_id,
)
from src.core.domain.order import Order, SellerOffer
from src.core.domain.vat import (
    DealStatus,
    NegotiationMode,
    OfferStatus,
    SellingVatType,
    VatRegime,
)

__all__ = [
    # VAT enums
    "VatRegime",
    "SellingVatType",
    "NegotiationMode",
    "OfferStatus",
    "DealStatus",
    # Order model
    "Order",
    "SellerOffer",
    # Messages
    "ApprovalAction",
    "ApprovalEvent",
    "OfferMessage",
    "SentMessage",
    "encode_custom_id",
    "decode_custom_id",
    # Confirmation
    "Confirmation",
]
