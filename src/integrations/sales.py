"""
Sales Repository — создание Sales и Affiliate Sales

Записи создаются только финализацией, поля собираются из заказа и
подтверждённых условий.
"""

from dataclasses import dataclass
from typing import Any, Optional

from src.config.settings import TableConfig
from src.core.domain.vat import VatRegime
from src.core.math.numerical_safeguards import round_money
from src.integrations.fields import SingleSelect
from src.integrations.record_store import RecordStore, formula_equals


@dataclass(frozen=True)
class SaleDraft:
    """Данные новой продажи"""

    external_record_id: str
    sku_id: str
    seller_id: str
    buyer_id: str
    purchase_price: float
    selling_price: float
    vat_type: VatRegime
    inventory_id: Optional[str] = None
    size: Optional[str] = None
    order_id: Optional[str] = None
    shipping_label: Optional[list[dict[str, Any]]] = None


class SalesRepository:
    """Доступ к таблицам Sales и Affiliate Sales"""

    def __init__(self, store: RecordStore, tables: TableConfig):
        self._store = store
        self._tables = tables

    async def create_sale(self, draft: SaleDraft) -> str:
        """
        Создание Sales записи.

        VAT Type — итоговый (mapped) тип инвойса, а не тип из оффера.

        Returns:
            Record id созданной продажи
        """
        t = self._tables
        fields: dict[str, Any] = {
            t.sales_external_record: [draft.external_record_id],
            t.sales_sku: [draft.sku_id],
            t.sales_seller: [draft.seller_id],
            t.sales_buyer: [draft.buyer_id],
            t.sales_purchase_price: round_money(draft.purchase_price),
            t.sales_selling_price: round_money(draft.selling_price),
            t.sales_vat_type: SingleSelect(draft.vat_type.value),
        }
        if draft.inventory_id:
            fields[t.sales_inventory] = [draft.inventory_id]
        if draft.size:
            fields[t.sales_size] = draft.size
        if draft.order_id:
            fields[t.sales_order_id] = draft.order_id
        if draft.shipping_label:
            # Attachments копируются по url
            fields[t.sales_shipping_label] = [
                {"url": a["url"], "filename": a.get("filename")}
                for a in draft.shipping_label
                if isinstance(a, dict) and a.get("url")
            ]
        return await self._store.create_record(t.table_sales, fields)

    async def create_affiliate_sale(self, sale_id: str, draft: SaleDraft) -> str:
        """
        Affiliate Sales запись со ссылкой на продажу.

        Payout продавцу — подтверждённая цена оффера.
        """
        t = self._tables
        fields: dict[str, Any] = {
            t.aff_sale: [sale_id],
            t.aff_seller: [draft.seller_id],
            t.aff_payout: round_money(draft.purchase_price),
            t.aff_vat_type: SingleSelect(draft.vat_type.value),
            t.aff_status: SingleSelect("Pending"),
        }
        return await self._store.create_record(t.table_affiliate_sales, fields)

    async def find_sale_for_order(self, order_id: Optional[str]) -> Optional[str]:
        """
        Уже созданная продажа по Order ID (или None).

        Нужна для повтора после сбоя связывания Linked Sale.
        """
        if not order_id:
            return None
        t = self._tables
        records = await self._store.query_records(t.table_sales, formula_equals(t.sales_order_id, order_id))
        return records[0].id if records else None
