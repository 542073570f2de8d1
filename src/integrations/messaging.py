"""
Messaging — интерфейс мессенджера и маршрутизация событий кнопок

MessagingGateway: отправка offer/confirmation сообщений, отключение кнопок,
deal-update уведомления.

ApprovalEventRouter: регистрация обработчиков кликов (on_approval_event) и
доставка событий. Ошибка обработчика логируется и не ломает цикл
обработки сообщений.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

from src.core.domain.messages import ApprovalEvent, SentMessage
from src.core.domain.order import Order, SellerOffer
from src.core.domain.vat import VatRegime
from src.core.math.offer_decision import DisplayAmounts

log = logging.getLogger(__name__)

ApprovalHandler = Callable[[ApprovalEvent], Awaitable[Any]]


# =============================================================================
# ERRORS
# =============================================================================


class MessagingError(Exception):
    """Ошибка транспорта сообщений"""


class ChannelNotFoundError(MessagingError):
    """Нет канала для продавца и создание каналов запрещено"""


# =============================================================================
# INTERFACE
# =============================================================================


class MessagingGateway(Protocol):
    """Collaborator: мессенджер с интерактивными кнопками."""

    async def send_offer_message(
        self,
        order: Order,
        seller: SellerOffer,
        display: DisplayAmounts,
        price: float,
        vat_label: VatRegime,
    ) -> SentMessage: ...

    async def send_confirmation_message(
        self,
        order: Order,
        seller: SellerOffer,
        display: DisplayAmounts,
        price: float,
        vat_label: VatRegime,
    ) -> SentMessage: ...

    async def disable_message(self, channel_id: str, message_id: str, note: Optional[str] = None) -> None: ...

    async def send_deal_update(
        self,
        seller_id: Optional[str],
        seller_name: str,
        content: str,
        embed: Optional[dict[str, Any]] = None,
    ) -> SentMessage: ...


# =============================================================================
# EVENT ROUTER
# =============================================================================


class ApprovalEventRouter:
    """
    Доставка ApprovalEvent зарегистрированным обработчикам.

    Каждый клик доставляется всем обработчикам конкурентно; результаты
    возвращаются в порядке регистрации.
    """

    def __init__(self) -> None:
        self._handlers: list[ApprovalHandler] = []

    def on_approval_event(self, handler: ApprovalHandler) -> ApprovalHandler:
        """Регистрация обработчика (можно использовать как декоратор)"""
        self._handlers.append(handler)
        return handler

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    async def dispatch(self, event: ApprovalEvent) -> list[Any]:
        """
        Доставка события.

        Returns:
            Результаты обработчиков (None для упавших)
        """
        outcomes = await asyncio.gather(*(handler(event) for handler in self._handlers), return_exceptions=True)
        results: list[Any] = []
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                log.error(
                    "Approval handler failed: action=%s order=%s message=%s",
                    event.action,
                    event.order_record_id,
                    event.message_id,
                    exc_info=outcome,
                )
                results.append(None)
            else:
                results.append(outcome)
        return results
