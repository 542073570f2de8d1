"""
Offer Message Log — журнал отправленных продавцам сообщений

Каждое сообщение логируется (order, seller, inventory, channel, message,
price), чтобы позже найти и отключить все сообщения заказа.

Ошибка записи лога не фатальна: сообщение продавцу уже отправлено и не должно
переотправляться из-за лога.
"""

import logging

from src.config.settings import TableConfig
from src.core.domain.messages import OfferMessage
from src.core.math.numerical_safeguards import round_money
from src.integrations.fields import parse_field
from src.integrations.record_store import RecordStore, formula_equals

log = logging.getLogger(__name__)


class OfferMessageLog:
    """Журнал OfferMessage в record store"""

    def __init__(self, store: RecordStore, tables: TableConfig):
        self._store = store
        self._tables = tables

    async def log(self, message: OfferMessage) -> bool:
        """
        Запись OfferMessage.

        Returns:
            True если запись создана, False при ошибке (ошибка только логируется)
        """
        t = self._tables
        fields = {
            t.offers_order_id: message.order_record_id,
            t.offers_channel_id: message.channel_id,
            t.offers_message_id: message.message_id,
            t.offers_seller_id: message.seller_id,
            t.offers_inventory_id: message.inventory_record_id,
            t.offers_price: round_money(message.price) if message.price is not None else None,
        }
        try:
            await self._store.create_record(t.table_offer_messages, fields)
        except Exception as e:
            log.warning(
                "Offer message log failed for order=%s seller=%s message=%s: %s",
                message.order_record_id,
                message.seller_id,
                message.message_id,
                e,
            )
            return False
        return True

    async def list_for_order(self, order_record_id: str) -> list[OfferMessage]:
        """
        Все залогированные сообщения заказа (уникальные по channel+message).

        Записи без channel/message id пропускаются.
        """
        if not order_record_id:
            return []
        t = self._tables
        records = await self._store.query_records(
            t.table_offer_messages, formula_equals(t.offers_order_id, order_record_id)
        )

        messages: list[OfferMessage] = []
        seen: set[tuple[str, str]] = set()
        for record in records:
            channel_id = parse_field(record.fields.get(t.offers_channel_id)).as_text()
            message_id = parse_field(record.fields.get(t.offers_message_id)).as_text()
            if not channel_id or not message_id or (channel_id, message_id) in seen:
                continue
            seen.add((channel_id, message_id))
            messages.append(
                OfferMessage(
                    order_record_id=order_record_id,
                    seller_id=parse_field(record.fields.get(t.offers_seller_id)).as_text(),
                    inventory_record_id=parse_field(record.fields.get(t.offers_inventory_id)).as_text(),
                    channel_id=channel_id,
                    message_id=message_id,
                    price=parse_field(record.fields.get(t.offers_price)).as_number(),
                )
            )
        return messages
