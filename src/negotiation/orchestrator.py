"""Negotiation Orchestrator — fan-out заказа по продавцам

Для каждого продавца:
1. Проверка цен (NaN/Inf/не разобраны → SKIPPED)
2. Decision engine → offer / confirm
3. Отправка сообщения через MessagingGateway
4. Лог OfferMessage (ошибка лога не отменяет отправку)

Ошибка одного продавца не прерывает обработку остальных: результат по
каждому продавцу возвращается в FanOutSummary.

close_offers: закрытие всех сообщений заказа (best-effort).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from src.core.domain.messages import OfferMessage
from src.core.domain.order import Order, SellerOffer
from src.core.domain.vat import NegotiationMode, VatRegime
from src.core.math.numerical_safeguards import is_valid_float
from src.core.math.offer_decision import decide_mode_and_display
from src.integrations.messaging import MessagingGateway
from src.integrations.offer_log import OfferMessageLog

log = logging.getLogger(__name__)


class OrderRejectedError(ValueError):
    """Fan-out не выполняется: нет заказа или списка продавцов"""


class DispatchStatus(str, Enum):
    """Итог обработки одного продавца"""

    SENT = "SENT"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class SellerDispatchResult:
    """Результат fan-out по одному продавцу."""

    seller_id: str
    status: DispatchStatus
    kind: Optional[NegotiationMode] = None
    confirmed_vat_type: Optional[VatRegime] = None
    channel_id: Optional[str] = None
    message_id: Optional[str] = None
    price: Optional[float] = None
    logged: bool = False

    # Причина SKIPPED / FAILED
    reason: str = ""

    def to_sent_dict(self) -> dict:
        """Краткая форма для ответа API"""
        return {
            "sellerId": self.seller_id,
            "messageId": self.message_id,
            "kind": self.kind.value if self.kind else None,
            "confirmedVatType": self.confirmed_vat_type.value if self.confirmed_vat_type else None,
        }


@dataclass(frozen=True)
class FanOutSummary:
    """Результат fan-out по заказу."""

    order_record_id: str
    results: tuple[SellerDispatchResult, ...] = field(default_factory=tuple)

    @property
    def sent(self) -> list[SellerDispatchResult]:
        return [r for r in self.results if r.status == DispatchStatus.SENT]

    @property
    def sent_count(self) -> int:
        return len(self.sent)

    @property
    def skipped(self) -> list[SellerDispatchResult]:
        return [r for r in self.results if r.status == DispatchStatus.SKIPPED]

    @property
    def failed(self) -> list[SellerDispatchResult]:
        return [r for r in self.results if r.status == DispatchStatus.FAILED]


@dataclass(frozen=True)
class CloseOffersResult:
    """Результат закрытия сообщений заказа"""

    attempted: int
    failed: int


class NegotiationOrchestrator:
    """Fan-out заказа по продавцам и закрытие сообщений."""

    def __init__(self, messaging: MessagingGateway, offer_log: OfferMessageLog):
        self._messaging = messaging
        self._offer_log = offer_log

    async def fan_out(self, order: Optional[Order], sellers: Optional[Sequence[SellerOffer]]) -> FanOutSummary:
        """
        Отправка сообщений всем продавцам заказа.

        Продавцы обрабатываются последовательно в порядке payload.

        Raises:
            OrderRejectedError: нет заказа или список продавцов пуст
        """
        if order is None or not order.record_id:
            raise OrderRejectedError("Missing order or sellers in payload")
        if not sellers:
            raise OrderRejectedError("Missing order or sellers in payload")

        results = []
        for seller in sellers:
            try:
                result = await self._dispatch_one(order, seller)
            except Exception as e:
                log.warning("Dispatch failed for order=%s seller=%s: %s", order.record_id, seller.seller_id, e)
                result = SellerDispatchResult(seller_id=seller.seller_id, status=DispatchStatus.FAILED, reason=str(e))
            results.append(result)

        summary = FanOutSummary(order_record_id=order.record_id, results=tuple(results))
        log.info(
            "Fan-out order=%s: sent=%d skipped=%d failed=%d",
            order.record_id,
            summary.sent_count,
            len(summary.skipped),
            len(summary.failed),
        )
        return summary

    async def _dispatch_one(self, order: Order, seller: SellerOffer) -> SellerDispatchResult:
        suggested = seller.seller_suggested_raw
        ours = seller.base_offer_incl
        if not is_valid_float(suggested) or not is_valid_float(ours):
            log.warning(
                "Skipping seller=%s for order=%s: non-numeric prices (seller=%r, ours=%r)",
                seller.seller_id,
                order.record_id,
                suggested,
                ours,
            )
            return SellerDispatchResult(
                seller_id=seller.seller_id,
                status=DispatchStatus.SKIPPED,
                reason="non_numeric_prices",
            )

        decision = decide_mode_and_display(
            seller_suggested_raw=suggested,
            our_offer_incl=ours,
            vat_type_raw=seller.seller_vat_type,
            seller_vat_pct=seller.seller_vat_pct,
            seller_country=seller.seller_country,
        )
        price = decision.button_price

        if decision.mode == NegotiationMode.OFFER:
            sent = await self._messaging.send_offer_message(
                order, seller, decision.display, price, decision.confirmed_vat_type
            )
        else:
            sent = await self._messaging.send_confirmation_message(
                order, seller, decision.display, price, decision.confirmed_vat_type
            )

        logged = await self._offer_log.log(
            OfferMessage(
                order_record_id=order.record_id,
                seller_id=seller.seller_id,
                inventory_record_id=seller.inventory_record_id,
                channel_id=sent.channel_id,
                message_id=sent.message_id,
                price=price,
            )
        )

        log.info(
            "Sent %s to seller=%s order=%s price=%.2f vat=%s",
            decision.mode.value,
            seller.seller_id,
            order.record_id,
            price,
            decision.confirmed_vat_type.value,
        )
        return SellerDispatchResult(
            seller_id=seller.seller_id,
            status=DispatchStatus.SENT,
            kind=decision.mode,
            confirmed_vat_type=decision.confirmed_vat_type,
            channel_id=sent.channel_id,
            message_id=sent.message_id,
            price=price,
            logged=logged,
        )

    async def close_offers(self, order_record_id: str, reason: Optional[str] = None) -> CloseOffersResult:
        """
        Отключение всех сообщений заказа.

        Каждое сообщение отключается независимо, ошибки не блокируют остальные.
        """
        messages = await self._offer_log.list_for_order(order_record_id)
        note = f"✅ {reason or 'Closed'}. Offers disabled."
        outcomes = await asyncio.gather(
            *(self._messaging.disable_message(m.channel_id, m.message_id, note) for m in messages),
            return_exceptions=True,
        )
        failed = sum(1 for outcome in outcomes if isinstance(outcome, Exception))
        if failed:
            log.warning("close_offers order=%s: %d of %d disables failed", order_record_id, failed, len(messages))
        return CloseOffersResult(attempted=len(messages), failed=failed)
