"""
Core math modules для external offers

Денежные примитивы, VAT-нормализация и decision engine offer/confirm.
"""

# Numerical Safeguards
from src.core.math.numerical_safeguards import (
    MISSING_AMOUNT,
    MONEY_QUANT,
    clamp,
    format_euro,
    is_valid_float,
    round_money,
    to_number,
)

# VAT Normalizer
from src.core.math.vat_normalizer import (
    DEFAULT_VAT_FRACTION,
    is_netherlands,
    normalize_vat_token,
    to_fraction,
)

# Offer Decision
from src.core.math.offer_decision import (
    DisplayAmounts,
    OfferDecision,
    decide_mode_and_display,
)

__all__ = [
    # Numerical Safeguards
    "MISSING_AMOUNT",
    "MONEY_QUANT",
    "clamp",
    "format_euro",
    "is_valid_float",
    "round_money",
    "to_number",
    # VAT Normalizer
    "DEFAULT_VAT_FRACTION",
    "is_netherlands",
    "normalize_vat_token",
    "to_fraction",
    # Offer Decision
    "DisplayAmounts",
    "OfferDecision",
    "decide_mode_and_display",
]
