"""GATE 1: Подтверждённый оффер

Sales строится из подтверждённых условий, поэтому approval должен быть
завершён: SKU, Confirmed Seller и Confirmed Offer Price обязаны существовать.

Интеграция:
- Использует результат GATE 0 (должен быть PASS)
"""

from dataclasses import dataclass
from typing import Final

from src.finalization.gates.gate_00_presence import Gate00Result
from src.finalization.snapshot import DealSnapshot

FEEDBACK_MISSING_OFFER: Final[str] = (
    "❌ Missing confirmed offer details (SKU / Confirmed Seller / Confirmed Offer Price). Confirm an offer first."
)


@dataclass(frozen=True)
class Gate01Result:
    """Результат GATE 1."""

    passed: bool
    block_reason: str

    has_sku: bool
    has_seller: bool
    has_confirmed_price: bool

    feedback: str
    details: str


class Gate01ConfirmedOffer:
    """GATE 1: confirmed-offer guard (stateless)."""

    def evaluate(self, gate00_result: Gate00Result, snapshot: DealSnapshot) -> Gate01Result:
        """
        Args:
            gate00_result: результат GATE 0
            snapshot: снапшот заказа

        Returns:
            Gate01Result
        """
        has_sku = bool(snapshot.sku_id)
        has_seller = bool(snapshot.confirmed_seller_id)
        has_price = snapshot.confirmed_price is not None

        if not gate00_result.passed:
            return Gate01Result(
                passed=False,
                block_reason=f"gate00_blocked: {gate00_result.block_reason}",
                has_sku=has_sku,
                has_seller=has_seller,
                has_confirmed_price=has_price,
                feedback=gate00_result.feedback,
                details=f"GATE 0 blocked: {gate00_result.block_reason}",
            )

        if not (has_sku and has_seller and has_price):
            return Gate01Result(
                passed=False,
                block_reason="missing_confirmed_offer",
                has_sku=has_sku,
                has_seller=has_seller,
                has_confirmed_price=has_price,
                feedback=FEEDBACK_MISSING_OFFER,
                details=f"sku={has_sku}, seller={has_seller}, confirmed_price={has_price}",
            )

        return Gate01Result(
            passed=True,
            block_reason="",
            has_sku=True,
            has_seller=True,
            has_confirmed_price=True,
            feedback="",
            details=f"PASS: seller={snapshot.confirmed_seller_id}, confirmed_price={snapshot.confirmed_price}",
        )
