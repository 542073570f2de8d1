"""
Numerical Safeguards — безопасный разбор и округление денежных сумм

Модуль обеспечивает устойчивую работу с ценами из внешних источников:
- Разбор чисел из строк вида "€1.234,50", "100", "21%"
- NaN/Inf проверки перед сравнениями
- Округление до центов только на границе отображения/хранения

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Сравнения цен выполняются на неокруглённых значениях
2. Округление — ROUND_HALF_UP до 2 знаков (как в бухгалтерии)
3. NaN/Inf никогда не попадают в сообщения и записи
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Final, Optional

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Шаг округления денежных сумм (центы)
MONEY_QUANT: Final[Decimal] = Decimal("0.01")

# Отображение отсутствующей суммы
MISSING_AMOUNT: Final[str] = "—"

# Всё, что не цифра, точка, запятая или минус
_NON_NUMERIC_RE = re.compile(r"[^\d.,-]")


# =============================================================================
# РАЗБОР ЧИСЕЛ
# =============================================================================


def is_valid_float(value: Any) -> bool:
    """
    Проверка, является ли значение конечным числом.

    bool не считается числом (True/False из чекбоксов).

    Returns:
        True если value — int/float и не NaN/Inf
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def to_number(value: Any) -> Optional[float]:
    """
    Толерантный разбор числа.

    Строки очищаются от валютных символов и пробелов, десятичная запятая
    допускается ("99,50" → 99.5). При наличии и точки, и запятой последний
    разделитель считается десятичным ("1.234,50" → 1234.5).

    Args:
        value: число, строка или None

    Returns:
        float или None, если разобрать не удалось

    Examples:
        >>> to_number("€100")
        100.0
        >>> to_number("1.234,50")
        1234.5
        >>> to_number("abc") is None
        True
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None

    cleaned = _NON_NUMERIC_RE.sub("", value)
    if not cleaned:
        return None

    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    else:
        cleaned = cleaned.replace(",", ".")

    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def clamp(value: float, min_value: float, max_value: float) -> float:
    """Ограничение значения диапазоном [min_value, max_value]"""
    if min_value > max_value:
        raise ValueError(f"min_value ({min_value}) must be <= max_value ({max_value})")
    return max(min_value, min(value, max_value))


# =============================================================================
# ОКРУГЛЕНИЕ И ФОРМАТИРОВАНИЕ
# =============================================================================


def round_money(value: float) -> float:
    """
    Округление суммы до центов (ROUND_HALF_UP).

    Используется только при отображении и записи, не при сравнении.

    Examples:
        >>> round_money(121.0000001)
        121.0
        >>> round_money(74.375)
        74.38
    """
    if not is_valid_float(value):
        raise ValueError(f"Cannot round non-finite amount: {value!r}")
    try:
        quantized = Decimal(repr(float(value))).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"Cannot round amount: {value!r}") from e
    return float(quantized)


def format_euro(value: Any) -> str:
    """
    Форматирование суммы в евро: 90 → "€90.00".

    Невалидные значения отображаются как "—".
    """
    if not is_valid_float(value):
        return MISSING_AMOUNT
    return f"€{round_money(value):.2f}"
