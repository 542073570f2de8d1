"""
Offer Decision — выбор режима сообщения (offer / confirm) и сумм для отображения

Сравнивает предложенную продавцом цену с нашей ценой (VAT inclusive) на общей
VAT-базе. Выбор базы зависит от VAT-режима продавца (в порядке приоритета):

    MARGIN          → обе цены как есть,                  "(Margin)",  Margin
    VAT21           → обе цены как есть,                  "(VAT 21%)", VAT21
    VAT0 + NL       → seller × (1 + vat),                 "(VAT 21%)", VAT21
    VAT0 не NL      → ours / (1 + vat),                   "(VAT 0%)",  VAT0
    неизвестный     → как VAT21

Правило решения: mode = offer ⇔ basis_ours < basis_seller (строго).
Равенство → confirm.

Функция чистая: без I/O, одинаковые входы → одинаковый результат.
Округление до центов только в button_price (граница отображения).
"""

from dataclasses import dataclass
from typing import Any, Final, Optional

from src.core.domain.vat import NegotiationMode, VatRegime
from src.core.math.numerical_safeguards import is_valid_float, round_money
from src.core.math.vat_normalizer import (
    DEFAULT_VAT_FRACTION,
    is_netherlands,
    normalize_vat_token,
    to_fraction,
)

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

TAG_MARGIN: Final[str] = "(Margin)"
TAG_VAT21: Final[str] = "(VAT 21%)"
TAG_VAT0: Final[str] = "(VAT 0%)"

YOUR_LABEL: Final[str] = "Your Price"
OUR_LABEL: Final[str] = "Our Offer"


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class DisplayAmounts:
    """Суммы и подписи для сообщения продавцу (неокруглённые)"""

    your_amount: float
    our_amount: float
    vat_tag_your: str
    vat_tag_our: str
    your_label: str = YOUR_LABEL
    our_label: str = OUR_LABEL


@dataclass(frozen=True)
class OfferDecision:
    """Результат decision engine."""

    mode: NegotiationMode
    display: DisplayAmounts
    confirmed_vat_type: VatRegime

    # Диагностика: базы сравнения
    basis_ours: float
    basis_seller: float

    @property
    def button_price(self) -> float:
        """
        Цена на кнопке и в логе сообщений (2 знака).

        offer   → наша скорректированная сумма
        confirm → сумма продавца на базе отображения
        """
        if self.mode == NegotiationMode.OFFER:
            return round_money(self.display.our_amount)
        return round_money(self.display.your_amount)


# =============================================================================
# DECISION ENGINE
# =============================================================================


def decide_mode_and_display(
    seller_suggested_raw: float,
    our_offer_incl: float,
    vat_type_raw: Any = None,
    seller_vat_pct: Any = None,
    seller_country: Optional[str] = None,
) -> OfferDecision:
    """
    Решение offer/confirm и суммы для отображения.

    Args:
        seller_suggested_raw: цена продавца в его VAT-режиме
        our_offer_incl: наша цена (VAT inclusive)
        vat_type_raw: VAT-тег продавца в свободной форме ("Margin", "VAT-0", ...)
        seller_vat_pct: ставка VAT продавца (21 или 0.21), default 21%
        seller_country: страна продавца

    Returns:
        OfferDecision

    Raises:
        ValueError: если цены не являются конечными числами
    """
    if not is_valid_float(seller_suggested_raw) or not is_valid_float(our_offer_incl):
        raise ValueError(
            f"Prices must be finite numbers: seller={seller_suggested_raw!r}, ours={our_offer_incl!r}"
        )

    regime = normalize_vat_token(vat_type_raw)
    vat_fraction = to_fraction(seller_vat_pct)
    if vat_fraction is None:
        vat_fraction = DEFAULT_VAT_FRACTION
    factor = 1.0 + vat_fraction

    if regime == VatRegime.MARGIN:
        basis_seller = seller_suggested_raw
        basis_ours = our_offer_incl
        display = DisplayAmounts(
            your_amount=seller_suggested_raw,
            our_amount=our_offer_incl,
            vat_tag_your=TAG_MARGIN,
            vat_tag_our=TAG_MARGIN,
        )
        confirmed = VatRegime.MARGIN

    elif regime == VatRegime.VAT0 and is_netherlands(seller_country):
        # NL продавец с VAT0 администрируется как VAT21
        basis_seller = seller_suggested_raw * factor
        basis_ours = our_offer_incl
        display = DisplayAmounts(
            your_amount=basis_seller,
            our_amount=our_offer_incl,
            vat_tag_your=TAG_VAT21,
            vat_tag_our=TAG_VAT21,
        )
        confirmed = VatRegime.VAT21

    elif regime == VatRegime.VAT0:
        # Нашу inclusive цену приводим к exclusive базе продавца
        basis_seller = seller_suggested_raw
        basis_ours = our_offer_incl / factor
        display = DisplayAmounts(
            your_amount=seller_suggested_raw,
            our_amount=basis_ours,
            vat_tag_your=TAG_VAT0,
            vat_tag_our=TAG_VAT0,
        )
        confirmed = VatRegime.VAT0

    else:
        # VAT21 и неизвестный режим
        basis_seller = seller_suggested_raw
        basis_ours = our_offer_incl
        display = DisplayAmounts(
            your_amount=seller_suggested_raw,
            our_amount=our_offer_incl,
            vat_tag_your=TAG_VAT21,
            vat_tag_our=TAG_VAT21,
        )
        confirmed = VatRegime.VAT21

    mode = NegotiationMode.OFFER if basis_ours < basis_seller else NegotiationMode.CONFIRM

    return OfferDecision(
        mode=mode,
        display=display,
        confirmed_vat_type=confirmed,
        basis_ours=basis_ours,
        basis_seller=basis_seller,
    )
