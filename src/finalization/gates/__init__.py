"""Gates — гейты финализации сделки.

- GATE 0: Обязательные поля (Final Deal Price / Buyer / Shipping Label)
- GATE 1: Подтверждённый оффер (SKU / Confirmed Seller / Confirmed Offer Price)
- GATE 2: VAT-тип инвойса (Offer VAT Type × Selling VAT Type)
- GATE 3: Минимальная цена по VAT-типу инвойса
"""

from .gate_00_presence import Gate00Presence, Gate00Result
from .gate_01_confirmed_offer import Gate01ConfirmedOffer, Gate01Result
from .gate_02_vat_mapping import Gate02Result, Gate02VatMapping, parse_selling_vat_type
from .gate_03_minimum_price import Gate03MinimumPrice, Gate03Result

__all__ = [
    "Gate00Presence",
    "Gate00Result",
    "Gate01ConfirmedOffer",
    "Gate01Result",
    "Gate02VatMapping",
    "Gate02Result",
    "parse_selling_vat_type",
    "Gate03MinimumPrice",
    "Gate03Result",
]
