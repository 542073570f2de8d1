"""
Inventory Repository — складские единицы продавцов

- Linked Seller складской записи (кто подтвердил оффер)
- Поиск записи для списания с fallback по seller + SKU + остатку
- Списание одной единицы (остаток не уходит ниже нуля)
"""

import logging
from typing import Optional

from src.config.settings import TableConfig
from src.integrations.fields import parse_field
from src.integrations.record_store import Record, RecordNotFoundError, RecordStore, formula_equals

log = logging.getLogger(__name__)


class InventoryLinkError(Exception):
    """Inventory запись не ссылается на продавца"""


class InventoryRepository:
    """Доступ к таблице Inventory"""

    def __init__(self, store: RecordStore, tables: TableConfig):
        self._store = store
        self._tables = tables

    async def get_linked_seller_id(self, inventory_record_id: str) -> str:
        """
        Seller record id из поля Linked Seller.

        Raises:
            InventoryLinkError: поле пустое или не linked record
            RecordNotFoundError: inventory запись не найдена
        """
        if not inventory_record_id:
            raise InventoryLinkError("Inventory record id is missing")
        t = self._tables
        fields = await self._store.get_record(t.table_inventory, inventory_record_id)
        seller_id = parse_field(fields.get(t.inv_linked_seller)).first_id
        if not seller_id:
            raise InventoryLinkError(
                f"Inventory {inventory_record_id}: Linked Seller field empty or not a linked record."
            )
        return seller_id

    async def resolve_for_sale(
        self,
        inventory_record_id: Optional[str],
        seller_id: Optional[str],
        sku_id: Optional[str],
    ) -> Optional[Record]:
        """
        Inventory запись для списания.

        1. Подтверждённая запись по id
        2. Fallback: первая запись продавца с тем же SKU и остатком > 0

        Returns:
            Record или None, если ничего не найдено
        """
        t = self._tables
        if inventory_record_id:
            try:
                fields = await self._store.get_record(t.table_inventory, inventory_record_id)
                return Record(id=inventory_record_id, fields=fields)
            except RecordNotFoundError:
                log.warning("Confirmed inventory %s no longer exists, searching by seller/SKU", inventory_record_id)

        if not seller_id:
            return None

        clauses = [formula_equals(t.inv_seller_record_id, seller_id), f"{{{t.inv_quantity}}}>0"]
        if sku_id:
            clauses.insert(1, formula_equals(t.inv_sku_record_id, sku_id))
        records = await self._store.query_records(t.table_inventory, f"AND({', '.join(clauses)})")
        if not records:
            return None
        log.info("Inventory fallback matched %s (seller=%s sku=%s)", records[0].id, seller_id, sku_id)
        return records[0]

    async def decrement(self, record: Record, by: int = 1) -> int:
        """
        Списание остатка.

        Returns:
            Новый остаток (≥ 0)
        """
        t = self._tables
        current = parse_field(record.fields.get(t.inv_quantity)).as_number() or 0.0
        new_quantity = max(0, int(current) - by)
        await self._store.patch_record(t.table_inventory, record.id, {t.inv_quantity: new_quantity})
        return new_quantity
