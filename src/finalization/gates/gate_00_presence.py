"""GATE 0: Обязательные поля сделки

Первый gate финализации. Блокирует, если отсутствует хотя бы одно из:
- Final Deal Price
- Buyer (linked)
- Shipping Label (attachment)

Все недостающие поля перечисляются в одном feedback.
"""

from dataclasses import dataclass

from src.finalization.snapshot import DealSnapshot


@dataclass(frozen=True)
class Gate00Result:
    """Результат GATE 0."""

    passed: bool
    block_reason: str

    # Недостающие поля (в порядке проверки)
    missing: tuple[str, ...]

    # Текст для оператора (пусто при PASS)
    feedback: str

    details: str


class Gate00Presence:
    """GATE 0: presence check (stateless)."""

    def evaluate(self, snapshot: DealSnapshot) -> Gate00Result:
        """
        Args:
            snapshot: снапшот заказа

        Returns:
            Gate00Result
        """
        missing = []
        if snapshot.final_price is None:
            missing.append("Final Deal Price")
        if not snapshot.buyer_id:
            missing.append("Buyer")
        if not snapshot.has_shipping_label:
            missing.append("Shipping Label")

        if missing:
            return Gate00Result(
                passed=False,
                block_reason="missing_required_fields",
                missing=tuple(missing),
                feedback=f"❌ Missing required: {', '.join(missing)}.",
                details=f"missing={missing}",
            )

        return Gate00Result(
            passed=True,
            block_reason="",
            missing=(),
            feedback="",
            details=f"PASS: final_price={snapshot.final_price}, buyer={snapshot.buyer_id}",
        )
