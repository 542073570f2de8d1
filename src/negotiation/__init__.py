"""Negotiation — fan-out заказа по продавцам (offer / confirmation сообщения)."""

from .orchestrator import (
    CloseOffersResult,
    DispatchStatus,
    FanOutSummary,
    NegotiationOrchestrator,
    OrderRejectedError,
    SellerDispatchResult,
)

__all__ = [
    "CloseOffersResult",
    "DispatchStatus",
    "FanOutSummary",
    "NegotiationOrchestrator",
    "OrderRejectedError",
    "SellerDispatchResult",
]
