"""
VAT — перечисления VAT-режимов и режимов переговоров

Используются всеми компонентами: decision engine, approval, finalization.
Значения enum совпадают с single-select опциями в record store.
"""

from enum import Enum


# =============================================================================
# ENUMS
# =============================================================================


class VatRegime(str, Enum):
    """
    VAT-режим товара у продавца (и на инвойсе).

    MARGIN — маржинальная схема, цены сравниваются как есть
    VAT21  — цены включают 21% VAT
    VAT0   — цены продавца без VAT (intra-EU / export)
    """

    MARGIN = "Margin"
    VAT21 = "VAT21"
    VAT0 = "VAT0"


class SellingVatType(str, Enum):
    """
    VAT-тип продажи, выбранный оператором при закрытии сделки.

    PRIVATE — покупатель частное лицо (всегда платит inclusive).
    """

    MARGIN = "Margin"
    VAT21 = "VAT21"
    VAT0 = "VAT0"
    PRIVATE = "Private"


class NegotiationMode(str, Enum):
    """Режим сообщения продавцу"""

    OFFER = "offer"  # Наша цена ниже, продавец должен принять конкретную сумму
    CONFIRM = "confirm"  # Цена продавца принимается, нужно лишь подтвердить наличие


class OfferStatus(str, Enum):
    """Статус оффера на записи заказа"""

    OPEN = "Open"
    CONFIRMED = "Confirmed"


class DealStatus(str, Enum):
    """
    Прогресс сделки на записи заказа.

    CLOSING — промежуточное состояние, требует внимания оператора
    DEAL_CLOSED — оператор закрыл сделку, можно финализировать
    DEAL_PROCESSED — Sales и Affiliate Sales созданы (терминальное)
    """

    CLOSING = "Closing"
    DEAL_CLOSED = "Deal Closed"
    DEAL_PROCESSED = "Deal Processed"
