"""GATE 3: Минимальная цена сделки

Минимальная цена берётся по итоговому VAT-типу инвойса (GATE 2): отдельные
пороги для Margin / VAT21 / VAT0.

- Порог не задан → PASS
- final_price < порог и нет Exception Approved → блокировка
- final_price == порог → PASS
- Exception Approved → PASS с отметкой exception_used

Интеграция:
- Использует результат GATE 2 (mapped_vat_type)
"""

from dataclasses import dataclass
from typing import Optional

from src.core.math.numerical_safeguards import format_euro
from src.finalization.gates.gate_02_vat_mapping import Gate02Result
from src.finalization.snapshot import DealSnapshot


@dataclass(frozen=True)
class Gate03Result:
    """Результат GATE 3."""

    passed: bool
    block_reason: str

    final_price: Optional[float]
    minimum_price: Optional[float]
    exception_used: bool

    feedback: str
    details: str


class Gate03MinimumPrice:
    """GATE 3: minimum-price floor (stateless)."""

    def evaluate(self, gate02_result: Gate02Result, snapshot: DealSnapshot) -> Gate03Result:
        """
        Args:
            gate02_result: результат GATE 2
            snapshot: снапшот заказа

        Returns:
            Gate03Result
        """
        final_price = snapshot.final_price

        if not gate02_result.passed or gate02_result.mapped_vat_type is None:
            return Gate03Result(
                passed=False,
                block_reason=f"gate02_blocked: {gate02_result.block_reason}",
                final_price=final_price,
                minimum_price=None,
                exception_used=False,
                feedback=gate02_result.feedback,
                details=f"GATE 2 blocked: {gate02_result.block_reason}",
            )

        vat_type = gate02_result.mapped_vat_type
        minimum = snapshot.minimum_price_for(vat_type)

        if minimum is None or final_price is None or final_price >= minimum:
            return Gate03Result(
                passed=True,
                block_reason="",
                final_price=final_price,
                minimum_price=minimum,
                exception_used=False,
                feedback="",
                details=f"PASS: final={final_price}, minimum[{vat_type.value}]={minimum}",
            )

        if snapshot.exception_approved:
            return Gate03Result(
                passed=True,
                block_reason="",
                final_price=final_price,
                minimum_price=minimum,
                exception_used=True,
                feedback="",
                details=f"PASS (exception approved): final={final_price} < minimum[{vat_type.value}]={minimum}",
            )

        return Gate03Result(
            passed=False,
            block_reason="below_minimum_price",
            final_price=final_price,
            minimum_price=minimum,
            exception_used=False,
            feedback=(
                f"❌ Final Deal Price ({format_euro(final_price)}) is lower than Minimum Deal Price "
                f"for {vat_type.value} ({format_euro(minimum)}). Ask Admin for approval."
            ),
            details=f"BLOCKED: final={final_price} < minimum[{vat_type.value}]={minimum}",
        )
