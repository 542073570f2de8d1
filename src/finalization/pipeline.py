"""
Deal Finalizer — финализация внешней сделки

Порядок:
1. Чтение заказа → DealSnapshot
2. Deal Processed → 409 (ничего не пишется)
3. GATE 0..3 → при блокировке 422 + feedback + Deal Status = Closing
4. Sales с итоговым VAT-типом (или уже созданная продажа: Linked Sale,
   затем поиск по Order ID) → Linked Sale; ошибка связывания → 500
5. Списание inventory (ошибки только логируются)
6. Affiliate Sales → при ошибке 500 + partial-success feedback, Sales не откатывается
7. Успех → feedback + Deal Status = Deal Processed

Любая непредвиденная ошибка → 500 + "❌ Server error: ..." (best effort).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from src.core.domain.vat import DealStatus, VatRegime
from src.finalization.gates import (
    Gate00Presence,
    Gate01ConfirmedOffer,
    Gate02VatMapping,
    Gate03MinimumPrice,
)
from src.finalization.snapshot import DealSnapshot
from src.integrations.external_sales import ExternalSalesRepository
from src.integrations.inventory import InventoryRepository
from src.integrations.sales import SaleDraft, SalesRepository

log = logging.getLogger(__name__)


def _first_block_reason(*results: Any) -> str:
    """block_reason гейта, который заблокировал первым (без gateNN_blocked префиксов)"""
    for result in results:
        if not result.passed:
            return result.block_reason
    return ""


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class FinalizationResult:
    """Результат финализации (status_code в терминах HTTP)"""

    status_code: int
    ok: bool
    record_id: str
    feedback: str = ""
    error: Optional[str] = None
    block_reason: str = ""
    missing: tuple[str, ...] = ()
    mapped_vat_type: Optional[VatRegime] = None
    sales_id: Optional[str] = None
    affiliate_id: Optional[str] = None
    inventory_quantity: Optional[int] = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def to_response(self) -> dict[str, Any]:
        """JSON-тело ответа"""
        body: dict[str, Any] = {"ok": self.ok}
        if self.error:
            body["error"] = self.error
        if self.feedback:
            body["feedback"] = self.feedback
        if self.missing:
            body["missing"] = list(self.missing)
        if self.mapped_vat_type is not None:
            body["vatType"] = self.mapped_vat_type.value
        if self.sales_id:
            body["salesId"] = self.sales_id
        if self.affiliate_id:
            body["affiliateId"] = self.affiliate_id
        if self.warnings:
            body["warnings"] = list(self.warnings)
        return body


# =============================================================================
# FINALIZER
# =============================================================================


class DealFinalizer:
    """Валидация и коммит сделки: Sales + Affiliate Sales + списание inventory"""

    def __init__(
        self,
        orders: ExternalSalesRepository,
        inventory: InventoryRepository,
        sales: SalesRepository,
    ):
        self._orders = orders
        self._inventory = inventory
        self._sales = sales

        self._gate00 = Gate00Presence()
        self._gate01 = Gate01ConfirmedOffer()
        self._gate02 = Gate02VatMapping()
        self._gate03 = Gate03MinimumPrice()

    async def finalize(self, record_id: str) -> FinalizationResult:
        """
        Финализация заказа.

        Не бросает исключений: все ошибки превращаются в FinalizationResult.
        """
        try:
            return await self._finalize(record_id)
        except Exception as e:
            log.exception("Finalization failed for %s", record_id)
            feedback = f"❌ Server error: {e}"
            try:
                await self._orders.write_feedback(record_id, feedback, DealStatus.CLOSING)
            except Exception:
                log.warning("Could not write server-error feedback to %s", record_id)
            return FinalizationResult(
                status_code=500,
                ok=False,
                record_id=record_id,
                feedback=feedback,
                error=str(e),
            )

    async def _finalize(self, record_id: str) -> FinalizationResult:
        fields = await self._orders.read(record_id)
        snapshot = DealSnapshot.from_fields(record_id, fields, self._orders.tables)

        if snapshot.is_processed:
            log.info("Finalization refused for %s: already %s", record_id, DealStatus.DEAL_PROCESSED.value)
            return FinalizationResult(
                status_code=409,
                ok=False,
                record_id=record_id,
                error="Deal already processed",
                block_reason="already_processed",
                sales_id=snapshot.linked_sale_id,
            )

        # Гейты
        g0 = self._gate00.evaluate(snapshot)
        g1 = self._gate01.evaluate(g0, snapshot)
        g2 = self._gate02.evaluate(g1, snapshot)
        g3 = self._gate03.evaluate(g2, snapshot)

        if not g3.passed:
            block_reason = _first_block_reason(g0, g1, g2, g3)
            log.info("Finalization rejected for %s: %s", record_id, block_reason)
            await self._orders.write_feedback(record_id, g3.feedback, DealStatus.CLOSING)
            return FinalizationResult(
                status_code=422,
                ok=False,
                record_id=record_id,
                feedback=g3.feedback,
                error=g3.feedback,
                block_reason=block_reason,
                missing=g0.missing,
            )

        mapped = g2.mapped_vat_type
        draft = SaleDraft(
            external_record_id=record_id,
            sku_id=snapshot.sku_id,
            seller_id=snapshot.confirmed_seller_id,
            buyer_id=snapshot.buyer_id,
            purchase_price=snapshot.confirmed_price,
            selling_price=snapshot.final_price,
            vat_type=mapped,
            inventory_id=snapshot.confirmed_inventory_id,
            size=snapshot.size,
            order_id=snapshot.order_id,
            shipping_label=[a for a in snapshot.shipping_label if isinstance(a, dict)],
        )

        warnings: list[str] = []
        quantity: Optional[int] = None

        if snapshot.linked_sale_id:
            # Предыдущий запуск создал Sales и упал на Affiliate Sales
            sales_id = snapshot.linked_sale_id
            log.info("Reusing linked sale %s for %s", sales_id, record_id)
        else:
            # Предыдущий запуск мог создать Sales и упасть на связывании
            sales_id = await self._sales.find_sale_for_order(snapshot.order_id)
            if sales_id:
                log.info("Found unlinked sale %s for %s, reusing", sales_id, record_id)
            else:
                try:
                    sales_id = await self._sales.create_sale(draft)
                except Exception as e:
                    log.exception("Sales creation failed for %s", record_id)
                    feedback = f"❌ Could not create Sales: {e}"
                    await self._orders.write_feedback(record_id, feedback, DealStatus.CLOSING)
                    return FinalizationResult(
                        status_code=500,
                        ok=False,
                        record_id=record_id,
                        feedback=feedback,
                        error=str(e),
                        mapped_vat_type=mapped,
                    )
                log.info("Sales created: %s for %s (vat=%s)", sales_id, record_id, mapped.value)

            # Без Linked Sale списание и Affiliate Sales не выполняются
            try:
                await self._orders.link_sale(record_id, sales_id)
            except Exception as e:
                log.exception("Could not link sale %s to %s", sales_id, record_id)
                feedback = f"⚠️ Sales created ({sales_id}) but could not be linked to this deal: {e}"
                await self._orders.write_feedback(record_id, feedback, DealStatus.CLOSING)
                return FinalizationResult(
                    status_code=500,
                    ok=False,
                    record_id=record_id,
                    feedback=feedback,
                    error=str(e),
                    mapped_vat_type=mapped,
                    sales_id=sales_id,
                )

            quantity = await self._decrement_inventory(snapshot, warnings)

        try:
            affiliate_id = await self._sales.create_affiliate_sale(sales_id, draft)
        except Exception as e:
            log.exception("Affiliate Sales creation failed for %s (sale %s)", record_id, sales_id)
            feedback = f"⚠️ Sales created ({sales_id}) but Affiliate Sales failed: {e}"
            await self._orders.write_feedback(record_id, feedback, DealStatus.CLOSING)
            return FinalizationResult(
                status_code=500,
                ok=False,
                record_id=record_id,
                feedback=feedback,
                error=str(e),
                mapped_vat_type=mapped,
                sales_id=sales_id,
                inventory_quantity=quantity,
                warnings=tuple(warnings),
            )

        feedback = f"✅ Deal processed. Sales created: {sales_id}. Affiliate Sales created successfully."
        await self._orders.write_feedback(record_id, feedback, DealStatus.DEAL_PROCESSED)
        log.info("Deal processed: %s sale=%s affiliate=%s", record_id, sales_id, affiliate_id)

        return FinalizationResult(
            status_code=200,
            ok=True,
            record_id=record_id,
            feedback=feedback,
            mapped_vat_type=mapped,
            sales_id=sales_id,
            affiliate_id=affiliate_id,
            inventory_quantity=quantity,
            warnings=tuple(warnings),
        )

    async def _decrement_inventory(self, snapshot: DealSnapshot, warnings: list[str]) -> Optional[int]:
        """Списание одной единицы; ошибки не блокируют созданную продажу"""
        try:
            record = await self._inventory.resolve_for_sale(
                snapshot.confirmed_inventory_id,
                snapshot.confirmed_seller_id,
                snapshot.sku_id,
            )
            if record is None:
                log.warning("No inventory found for %s, skipping decrement", snapshot.record_id)
                warnings.append("inventory_not_found")
                return None
            quantity = await self._inventory.decrement(record)
            log.info("Inventory %s decremented to %d", record.id, quantity)
            return quantity
        except Exception as e:
            log.warning("Inventory decrement failed for %s: %s", snapshot.record_id, e)
            warnings.append(f"inventory_decrement_failed: {e}")
            return None
