"""GATE 2: VAT-тип инвойса

Объединяет VAT-тип подтверждённого оффера (Offer VAT Type) и выбор оператора
(Selling VAT Type: VAT21 / VAT0 / Margin / Private) в один тип инвойса.

Правила (в порядке приоритета):
1. Оффер Margin → инвойс только Margin. Выбор Margin или пусто → Margin,
   любой другой выбор (включая Private) → блокировка.
2. Выбор Margin при оффере не-Margin → блокировка.
3. Private → VAT21 (частный покупатель платит inclusive).
4. VAT0 → только покупатель не из NL и с VAT номером; иначе блокировка с
   конкретной причиной (NL покупатель / нет VAT номера).
5. VAT21 → VAT21.
6. Пусто → VAT-тип оффера (VAT21, если он неизвестен), с проверкой п.4 для VAT0.

Интеграция:
- Использует результат GATE 1 (должен быть PASS)
"""

from dataclasses import dataclass
from typing import Optional

from src.core.domain.vat import SellingVatType, VatRegime
from src.core.math.vat_normalizer import is_netherlands, normalize_vat_token
from src.finalization.gates.gate_01_confirmed_offer import Gate01Result
from src.finalization.snapshot import DealSnapshot


def parse_selling_vat_type(raw: Optional[str]) -> Optional[SellingVatType]:
    """
    Разбор Selling VAT Type.

    Raises:
        ValueError: непустое нераспознанное значение
    """
    if raw is None or not raw.strip():
        return None
    if raw.strip().upper() == SellingVatType.PRIVATE.value.upper():
        return SellingVatType.PRIVATE
    regime = normalize_vat_token(raw)
    if regime is None:
        raise ValueError(f"Unknown Selling VAT Type: {raw}")
    return SellingVatType(regime.value)


@dataclass(frozen=True)
class Gate02Result:
    """Результат GATE 2."""

    passed: bool
    block_reason: str

    # Входы
    offer_vat_type: Optional[VatRegime]
    selling_vat_type: Optional[SellingVatType]

    # Итоговый VAT-тип инвойса (None при блокировке)
    mapped_vat_type: Optional[VatRegime]

    feedback: str
    details: str


class Gate02VatMapping:
    """GATE 2: VAT remapping (stateless)."""

    def evaluate(self, gate01_result: Gate01Result, snapshot: DealSnapshot) -> Gate02Result:
        """
        Args:
            gate01_result: результат GATE 1
            snapshot: снапшот заказа

        Returns:
            Gate02Result с mapped_vat_type при PASS
        """
        offer_vat = snapshot.offer_vat_type

        if not gate01_result.passed:
            return self._blocked(
                reason=f"gate01_blocked: {gate01_result.block_reason}",
                feedback=gate01_result.feedback,
                offer_vat=offer_vat,
                selling=None,
            )

        try:
            selling = parse_selling_vat_type(snapshot.selling_vat_type_raw)
        except ValueError as e:
            return self._blocked(
                reason="unknown_selling_vat_type",
                feedback=f"❌ {e}.",
                offer_vat=offer_vat,
                selling=None,
            )

        # 1. Margin оффер → только Margin
        if offer_vat == VatRegime.MARGIN:
            if selling in (None, SellingVatType.MARGIN):
                return self._passed(offer_vat, selling, VatRegime.MARGIN)
            return self._blocked(
                reason="margin_offer_requires_margin_invoice",
                feedback=(
                    "❌ Item was bought under the Margin scheme and can only be sold as Margin "
                    f"(selected: {selling.value})."
                ),
                offer_vat=offer_vat,
                selling=selling,
            )

        # 2. Margin инвойс без Margin оффера
        if selling == SellingVatType.MARGIN:
            return self._blocked(
                reason="margin_invoice_requires_margin_offer",
                feedback=(
                    "❌ Margin invoice is only allowed for items bought under the Margin scheme "
                    f"(offer VAT type: {offer_vat.value if offer_vat else 'unknown'})."
                ),
                offer_vat=offer_vat,
                selling=selling,
            )

        # 3. Private → VAT21
        if selling == SellingVatType.PRIVATE:
            return self._passed(offer_vat, selling, VatRegime.VAT21)

        if selling == SellingVatType.VAT21:
            return self._passed(offer_vat, selling, VatRegime.VAT21)

        if selling == SellingVatType.VAT0:
            mapped = VatRegime.VAT0
        else:
            # 6. Выбор не сделан → VAT-тип оффера
            mapped = offer_vat or VatRegime.VAT21

        # 4. VAT0 требования к покупателю
        if mapped == VatRegime.VAT0:
            if is_netherlands(snapshot.buyer_country):
                return self._blocked(
                    reason="vat0_buyer_in_netherlands",
                    feedback="❌ VAT0 is not allowed for buyers in the Netherlands. Choose VAT21 or Private.",
                    offer_vat=offer_vat,
                    selling=selling,
                )
            if not snapshot.buyer_vat_id:
                return self._blocked(
                    reason="vat0_missing_buyer_vat_id",
                    feedback="❌ VAT0 requires the buyer's VAT number. Add Buyer VAT ID or choose VAT21.",
                    offer_vat=offer_vat,
                    selling=selling,
                )

        return self._passed(offer_vat, selling, mapped)

    def _passed(
        self, offer_vat: Optional[VatRegime], selling: Optional[SellingVatType], mapped: VatRegime
    ) -> Gate02Result:
        return Gate02Result(
            passed=True,
            block_reason="",
            offer_vat_type=offer_vat,
            selling_vat_type=selling,
            mapped_vat_type=mapped,
            feedback="",
            details=(
                f"PASS: offer={offer_vat.value if offer_vat else None}, "
                f"selling={selling.value if selling else None} → {mapped.value}"
            ),
        )

    def _blocked(
        self,
        reason: str,
        feedback: str,
        offer_vat: Optional[VatRegime],
        selling: Optional[SellingVatType],
    ) -> Gate02Result:
        return Gate02Result(
            passed=False,
            block_reason=reason,
            offer_vat_type=offer_vat,
            selling_vat_type=selling,
            mapped_vat_type=None,
            feedback=feedback,
            details=f"BLOCKED: {reason}",
        )
