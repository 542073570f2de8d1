"""
Order / SellerOffer — входные модели переговоров

Immutable Pydantic модели, создаются из payload POST /external-offers.
Ключи payload в camelCase; доступ в коде — snake_case.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.math.numerical_safeguards import to_number


# =============================================================================
# ORDER
# =============================================================================


class Order(BaseModel):
    """
    Заказ покупателя, для которого ищется продавец.

    record_id — id записи в record store (External Sales Log),
    order_id — человекочитаемый номер заказа.
    """

    record_id: str = Field(..., min_length=1, alias="airtableRecordId", description="Record id заказа")
    order_id: Optional[str] = Field(None, alias="orderId", description="Номер заказа")
    sku: Optional[str] = Field(None, description="SKU")
    size: Optional[str] = Field(None, description="Размер")
    product_name: Optional[str] = Field(None, alias="productName", description="Название товара")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("order_id", "sku", "size", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        """Номера и размеры приходят и строками, и числами"""
        if v is None:
            return None
        return str(v)

    @property
    def display_id(self) -> str:
        """Номер заказа для сообщений (fallback на record id)"""
        return self.order_id or self.record_id


# =============================================================================
# SELLER OFFER
# =============================================================================


class SellerOffer(BaseModel):
    """
    Кандидат-продавец для заказа.

    Создаётся на время fan-out, отдельно не хранится (остаётся только
    залогированное OfferMessage).

    Цены, которые не удалось разобрать, становятся None — такой продавец
    пропускается orchestrator'ом, а не валит весь payload.
    """

    seller_id: str = Field(..., min_length=1, alias="sellerId", description="Id продавца")
    seller_name: Optional[str] = Field(None, alias="sellerName", description="Имя продавца (категория в чате)")
    inventory_record_id: Optional[str] = Field(
        None, alias="inventoryRecordId", description="Inventory запись продавца"
    )
    seller_suggested_raw: Optional[float] = Field(
        None, alias="sellerSuggestedRaw", description="Цена продавца в его VAT-режиме"
    )
    base_offer_incl: Optional[float] = Field(
        None, alias="baseOfferIncl", description="Наша цена (VAT inclusive)"
    )
    seller_vat_type: Optional[str] = Field(
        None, alias="sellerVatType", description="VAT-тег продавца (Margin / VAT21 / VAT0)"
    )
    seller_vat_pct: Optional[float] = Field(
        21.0, alias="sellerVatRatePct", description="Ставка VAT продавца (21 или 0.21)"
    )
    seller_country: str = Field("", alias="sellerCountry", description="Страна продавца")
    product_name: Optional[str] = Field(None, alias="productName", description="Название товара")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("seller_suggested_raw", "base_offer_incl", "seller_vat_pct", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> Optional[float]:
        """Толерантный разбор сумм ("€100", "99,50")"""
        return to_number(v)

    @field_validator("seller_id", "seller_name", "inventory_record_id", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return str(v)

    @field_validator("seller_country", mode="before")
    @classmethod
    def coerce_country(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @property
    def display_name(self) -> str:
        return self.seller_name or self.seller_id
