"""Approval State Machine — обработка кликов Accept / Deny продавцов

Состояния заказа (для этого сервиса):
- OPEN: победителя нет
- PROCESSING: клик по заказу обрабатывается (OrderLockTable)
- CONFIRMED: условия записаны (терминальное)

Переходы:
- deny: отключить одно сообщение, состояние заказа не меняется
- confirm:
  1. Mutex: заказ уже PROCESSING → отключить клик с "already being processed"
  2. Идемпотентность: в record store уже есть подтверждение → "already matched"
  3. Seller из Linked Seller складской записи
  4. Запись условий (цена, продавец, inventory, Confirmed, VAT, Closing)
  5. Отключить нажатое сообщение "Confirmed by X"
  6. Best-effort отключение остальных сообщений заказа
  7. Освобождение mutex всегда (в т.ч. при ошибке)

Ошибки шагов 3-6 логируются, нажатое сообщение отключается с "Could not
confirm"; цикл обработки событий не ломается.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Final, Optional

from src.approval.locks import OrderLockTable
from src.core.domain.confirmation import Confirmation
from src.core.domain.messages import ApprovalEvent
from src.core.math.numerical_safeguards import round_money
from src.core.math.vat_normalizer import normalize_vat_token
from src.integrations.external_sales import ExternalSalesRepository
from src.integrations.inventory import InventoryRepository
from src.integrations.messaging import MessagingGateway
from src.integrations.offer_log import OfferMessageLog

log = logging.getLogger(__name__)

# Тексты для продавцов
NOTE_DENIED: Final[str] = "❌ {seller} denied / not available."
NOTE_BUSY: Final[str] = "⏳ This order is already being processed. Offers are being closed."
NOTE_ALREADY_MATCHED: Final[str] = "ℹ️ This order was already matched with another seller. Offers closed."
NOTE_CONFIRMED: Final[str] = "✅ Confirmed by {seller}."
NOTE_SIBLING_CLOSED: Final[str] = "✅ Confirmed by another seller. Offers closed."
NOTE_FAILED: Final[str] = "⚠️ Could not confirm right now, please contact us."


class ApprovalState(str, Enum):
    """Состояние заказа с точки зрения approval"""

    OPEN = "OPEN"
    PROCESSING = "PROCESSING"
    CONFIRMED = "CONFIRMED"


class ApprovalOutcome(str, Enum):
    """Итог обработки одного события"""

    DENIED = "DENIED"
    BUSY = "BUSY"
    ALREADY_MATCHED = "ALREADY_MATCHED"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    IGNORED = "IGNORED"


@dataclass(frozen=True)
class ApprovalResult:
    """Результат обработки события."""

    outcome: ApprovalOutcome
    order_record_id: str
    message_id: str

    # Состояние заказа после обработки (насколько известно этому инстансу)
    state: ApprovalState

    confirmation: Optional[Confirmation] = None

    # Fan-out отключения соседних сообщений
    siblings_attempted: int = 0
    siblings_failed: int = 0

    details: str = ""


class ApprovalStateMachine:
    """
    Approval state machine с at-most-one-winner семантикой.

    Один экземпляр на процесс: таблица блокировок принадлежит ему.
    """

    def __init__(
        self,
        messaging: MessagingGateway,
        offer_log: OfferMessageLog,
        orders: ExternalSalesRepository,
        inventory: InventoryRepository,
        locks: Optional[OrderLockTable] = None,
    ):
        self._messaging = messaging
        self._offer_log = offer_log
        self._orders = orders
        self._inventory = inventory
        self.locks = locks if locks is not None else OrderLockTable()

    async def handle_event(self, event: ApprovalEvent) -> ApprovalResult:
        """
        Обработка клика продавца.

        Не выбрасывает исключений: любые ошибки превращаются в FAILED.
        """
        if event.is_deny:
            return await self._handle_deny(event)
        if not event.is_confirm:
            log.debug("Ignoring approval action=%s for order=%s", event.action, event.order_record_id)
            return self._create_result(event, ApprovalOutcome.IGNORED, ApprovalState.OPEN, details="unknown_action")
        return await self._handle_confirm(event)

    async def _handle_deny(self, event: ApprovalEvent) -> ApprovalResult:
        await self._safe_disable(event.channel_id, event.message_id, NOTE_DENIED.format(seller=event.seller_id))
        log.info("Seller=%s denied order=%s", event.seller_id, event.order_record_id)
        return self._create_result(event, ApprovalOutcome.DENIED, ApprovalState.OPEN, details="denied_by_seller")

    async def _handle_confirm(self, event: ApprovalEvent) -> ApprovalResult:
        order_id = event.order_record_id

        with self.locks.hold(order_id) as acquired:
            # 1. Mutex
            if not acquired:
                log.info("Order=%s already processing, rejecting click message=%s", order_id, event.message_id)
                await self._safe_disable(event.channel_id, event.message_id, NOTE_BUSY)
                return self._create_result(
                    event, ApprovalOutcome.BUSY, ApprovalState.PROCESSING, details="order_locked"
                )

            try:
                return await self._confirm_locked(event)
            except Exception as e:
                log.exception("Approval handling failed for order=%s message=%s", order_id, event.message_id)
                await self._safe_disable(event.channel_id, event.message_id, NOTE_FAILED)
                return self._create_result(event, ApprovalOutcome.FAILED, ApprovalState.OPEN, details=str(e))

    async def _confirm_locked(self, event: ApprovalEvent) -> ApprovalResult:
        order_id = event.order_record_id

        # 2. Идемпотентность (read-before-write)
        fields = await self._orders.read(order_id)
        if self._orders.has_confirmed_terms(fields):
            log.info("Order=%s already confirmed, closing click message=%s", order_id, event.message_id)
            await self._safe_disable(event.channel_id, event.message_id, NOTE_ALREADY_MATCHED)
            return self._create_result(
                event, ApprovalOutcome.ALREADY_MATCHED, ApprovalState.CONFIRMED, details="already_confirmed"
            )

        # 3. Продавец по складской записи
        seller_record_id = await self._inventory.get_linked_seller_id(event.inventory_record_id)

        # 4. Запись условий
        confirmation = Confirmation(
            order_record_id=order_id,
            confirmed_price=round_money(event.price) if event.price is not None else None,
            confirmed_seller_id=seller_record_id,
            confirmed_inventory_id=event.inventory_record_id or None,
            vat_type=normalize_vat_token(event.vat_label),
        )
        await self._orders.set_confirmation(confirmation)

        # 5. Нажатое сообщение
        await self._safe_disable(event.channel_id, event.message_id, NOTE_CONFIRMED.format(seller=event.seller_id))

        # 6. Остальные сообщения заказа
        attempted, failed = await self._close_siblings(event)

        return self._create_result(
            event,
            ApprovalOutcome.CONFIRMED,
            ApprovalState.CONFIRMED,
            confirmation=confirmation,
            siblings_attempted=attempted,
            siblings_failed=failed,
            details=f"confirmed_by={event.seller_id}",
        )

    async def _close_siblings(self, event: ApprovalEvent) -> tuple[int, int]:
        """Best-effort отключение всех других сообщений заказа"""
        try:
            messages = await self._offer_log.list_for_order(event.order_record_id)
        except Exception as e:
            log.warning("Cannot list offer messages for order=%s: %s", event.order_record_id, e)
            return 0, 0

        siblings = [m for m in messages if m.ref != (event.channel_id, event.message_id)]
        outcomes = await asyncio.gather(
            *(self._messaging.disable_message(m.channel_id, m.message_id, NOTE_SIBLING_CLOSED) for m in siblings),
            return_exceptions=True,
        )
        failed = 0
        for message, outcome in zip(siblings, outcomes):
            if isinstance(outcome, Exception):
                failed += 1
                log.warning("Failed to disable sibling message=%s for order=%s: %s", message.message_id, event.order_record_id, outcome)
        return len(siblings), failed

    async def _safe_disable(self, channel_id: str, message_id: str, note: str) -> bool:
        try:
            await self._messaging.disable_message(channel_id, message_id, note)
        except Exception as e:
            log.warning("Failed to disable message=%s in channel=%s: %s", message_id, channel_id, e)
            return False
        return True

    def _create_result(
        self,
        event: ApprovalEvent,
        outcome: ApprovalOutcome,
        state: ApprovalState,
        confirmation: Optional[Confirmation] = None,
        siblings_attempted: int = 0,
        siblings_failed: int = 0,
        details: str = "",
    ) -> ApprovalResult:
        """Создание результата обработки."""
        return ApprovalResult(
            outcome=outcome,
            order_record_id=event.order_record_id,
            message_id=event.message_id,
            state=state,
            confirmation=confirmation,
            siblings_attempted=siblings_attempted,
            siblings_failed=siblings_failed,
            details=details,
        )
