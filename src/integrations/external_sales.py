"""
External Sales Repository — запись заказа (External Sales Log)

Чтение заказа, запись подтверждённых условий, feedback оператору и ссылка на
созданную продажу.
"""

import logging
from typing import Any, Optional

from src.config.settings import TableConfig
from src.core.domain.confirmation import Confirmation
from src.core.domain.vat import DealStatus, OfferStatus
from src.core.math.numerical_safeguards import round_money
from src.integrations.fields import SingleSelect, parse_field
from src.integrations.record_store import RecordStore

log = logging.getLogger(__name__)


class ExternalSalesRepository:
    """Доступ к записям заказов"""

    def __init__(self, store: RecordStore, tables: TableConfig):
        self._store = store
        self._tables = tables

    @property
    def tables(self) -> TableConfig:
        return self._tables

    async def read(self, record_id: str) -> dict[str, Any]:
        """Сырые поля записи заказа"""
        return await self._store.get_record(self._tables.table_external, record_id)

    def has_confirmed_terms(self, fields: dict[str, Any]) -> bool:
        """
        Заказ уже подтверждён (read-before-write проверка идемпотентности).

        Подтверждён, если Offer Status == Confirmed или уже есть Confirmed Seller.
        """
        t = self._tables
        status = parse_field(fields.get(t.ext_offer_status)).as_text()
        if status and status.strip().lower() == OfferStatus.CONFIRMED.value.lower():
            return True
        return not parse_field(fields.get(t.ext_confirmed_seller)).is_empty

    async def set_confirmation(self, confirmation: Confirmation) -> None:
        """
        Запись подтверждённых условий одним PATCH.

        Offer Status и Deal Status — single-select (SingleSelect).
        """
        t = self._tables
        fields: dict[str, Any] = {
            t.ext_offer_status: SingleSelect(confirmation.offer_status.value),
            t.ext_confirmed_price: (
                round_money(confirmation.confirmed_price) if confirmation.confirmed_price is not None else None
            ),
            t.ext_confirmed_seller: [confirmation.confirmed_seller_id],
            t.ext_deal_status: SingleSelect(confirmation.deal_status.value),
        }
        if confirmation.confirmed_inventory_id:
            fields[t.ext_confirmed_inventory] = [confirmation.confirmed_inventory_id]
        if confirmation.vat_type is not None:
            fields[t.ext_offer_vat_type] = SingleSelect(confirmation.vat_type.value)

        await self._store.patch_record(t.table_external, confirmation.order_record_id, fields)
        log.info(
            "Confirmation written: order=%s seller=%s price=%s vat=%s",
            confirmation.order_record_id,
            confirmation.confirmed_seller_id,
            confirmation.confirmed_price,
            confirmation.vat_type.value if confirmation.vat_type else None,
        )

    async def write_feedback(
        self,
        record_id: str,
        feedback: str,
        deal_status: Optional[DealStatus] = None,
    ) -> None:
        """Feedback оператору (+ опционально Deal Status)"""
        t = self._tables
        fields: dict[str, Any] = {t.ext_feedback: feedback}
        if deal_status is not None:
            fields[t.ext_deal_status] = SingleSelect(deal_status.value)
        await self._store.patch_record(t.table_external, record_id, fields)

    async def link_sale(self, record_id: str, sale_id: str) -> None:
        t = self._tables
        await self._store.patch_record(t.table_external, record_id, {t.ext_linked_sale: [sale_id]})
