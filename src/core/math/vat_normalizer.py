"""
VAT Normalizer — приведение VAT-параметров продавца к каноническому виду

Три независимых нормализатора без внешних зависимостей:
- Процент/доля VAT → доля в [0, 1]
- Страна → "это Нидерланды?"
- Свободная строка VAT-типа → VatRegime
"""

import re
from typing import Any, Final, Optional

from src.core.domain.vat import VatRegime
from src.core.math.numerical_safeguards import clamp, to_number

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Ставка NL по умолчанию (если продавец не указал свою)
DEFAULT_VAT_FRACTION: Final[float] = 0.21

# Точные написания Нидерландов (после lower + схлопывания пробелов)
NL_SPELLINGS: Final[frozenset[str]] = frozenset(
    {
        "nl",
        "nld",
        "nederland",
        "netherlands",
        "the netherlands",
        "holland",
    }
)

# Подстроки, однозначно указывающие на Нидерланды
NL_FRAGMENTS: Final[tuple[str, ...]] = ("neder", "nether", "🇳🇱")

_WHITESPACE_RE = re.compile(r"\s+")
_TOKEN_STRIP_RE = re.compile(r"[\s-]+")


# =============================================================================
# НОРМАЛИЗАТОРЫ
# =============================================================================


def to_fraction(value: Any) -> Optional[float]:
    """
    Приведение VAT-ставки к доле.

    Значения > 1 считаются процентами (21 → 0.21), значения ≤ 1 — уже долей
    (0.21 → 0.21). Результат ограничен [0, 1].

    Args:
        value: число или строка ("21", "21%", 0.21)

    Returns:
        Доля в [0, 1] или None, если значение не разобрано
    """
    number = to_number(value)
    if number is None:
        return None
    fraction = number / 100.0 if number > 1 else number
    return clamp(fraction, 0.0, 1.0)


def is_netherlands(country: Any) -> bool:
    """
    Определение, что страна — Нидерланды.

    Регистр и пробелы игнорируются; принимаются аббревиатуры (NL, NLD),
    голландское/английское написание и флаг 🇳🇱.
    """
    if not country:
        return False
    normalized = _WHITESPACE_RE.sub(" ", str(country)).strip().lower()
    if not normalized:
        return False
    if normalized in NL_SPELLINGS:
        return True
    return any(fragment in normalized for fragment in NL_FRAGMENTS)


def normalize_vat_token(raw: Any) -> Optional[VatRegime]:
    """
    Разбор VAT-типа из свободной строки.

    Строка переводится в верхний регистр, пробелы и дефисы удаляются, затем
    ищутся токены MARGIN, VAT21, VAT0 (в этом порядке).

    Examples:
        >>> normalize_vat_token("vat-0")
        <VatRegime.VAT0: 'VAT0'>
        >>> normalize_vat_token("VAT 21%")
        <VatRegime.VAT21: 'VAT21'>
        >>> normalize_vat_token("unknown") is None
        True
    """
    if raw is None:
        return None
    token = _TOKEN_STRIP_RE.sub("", str(raw)).upper()
    if "MARGIN" in token:
        return VatRegime.MARGIN
    if "VAT21" in token:
        return VatRegime.VAT21
    if "VAT0" in token:
        return VatRegime.VAT0
    return None
