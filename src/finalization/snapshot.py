"""
Deal Snapshot — разобранная запись заказа для финализации

Все поля заказа приводятся через parse_field один раз; гейты работают
только со снапшотом и не знают о формах значений record store.
"""

from dataclasses import dataclass
from typing import Any, Optional

from src.config.settings import TableConfig
from src.core.domain.vat import DealStatus, VatRegime
from src.core.math.vat_normalizer import normalize_vat_token
from src.integrations.fields import parse_field


@dataclass(frozen=True)
class DealSnapshot:
    """Снапшот заказа на момент финализации"""

    record_id: str

    # Сделка
    final_price: Optional[float]
    buyer_id: Optional[str]
    shipping_label: tuple[Any, ...]
    deal_status: Optional[str]

    # Подтверждённый оффер
    sku_id: Optional[str]
    confirmed_seller_id: Optional[str]
    confirmed_price: Optional[float]
    confirmed_inventory_id: Optional[str]
    offer_vat_type: Optional[VatRegime]

    # VAT продажи
    selling_vat_type_raw: Optional[str]
    buyer_country: Optional[str]
    buyer_vat_id: Optional[str]

    # Минимальные цены по VAT-типу инвойса
    min_price_margin: Optional[float]
    min_price_vat21: Optional[float]
    min_price_vat0: Optional[float]
    exception_approved: bool

    # Прочее
    order_id: Optional[str] = None
    size: Optional[str] = None
    linked_sale_id: Optional[str] = None

    @property
    def has_shipping_label(self) -> bool:
        return len(self.shipping_label) > 0

    @property
    def is_processed(self) -> bool:
        """Сделка уже финализирована (Deal Processed)"""
        return (self.deal_status or "").strip().lower() == DealStatus.DEAL_PROCESSED.value.lower()

    def minimum_price_for(self, vat_type: VatRegime) -> Optional[float]:
        """Минимальная цена для VAT-типа инвойса"""
        if vat_type == VatRegime.MARGIN:
            return self.min_price_margin
        if vat_type == VatRegime.VAT0:
            return self.min_price_vat0
        return self.min_price_vat21

    @classmethod
    def from_fields(cls, record_id: str, fields: dict[str, Any], tables: TableConfig) -> "DealSnapshot":
        t = tables

        def value(name: str):
            return parse_field(fields.get(name))

        shipping_raw = fields.get(t.ext_shipping_label)
        shipping = tuple(shipping_raw) if isinstance(shipping_raw, (list, tuple)) else ()

        return cls(
            record_id=record_id,
            final_price=value(t.ext_final_price).as_number(),
            buyer_id=value(t.ext_buyer).first_id,
            shipping_label=shipping,
            deal_status=value(t.ext_deal_status).as_text(),
            sku_id=value(t.ext_sku).first_id,
            confirmed_seller_id=value(t.ext_confirmed_seller).first_id,
            confirmed_price=value(t.ext_confirmed_price).as_number(),
            confirmed_inventory_id=value(t.ext_confirmed_inventory).first_id or value(t.ext_confirmed_inventory).as_text(),
            offer_vat_type=normalize_vat_token(value(t.ext_offer_vat_type).as_text()),
            selling_vat_type_raw=value(t.ext_selling_vat_type).as_text(),
            buyer_country=value(t.ext_buyer_country).as_text(),
            buyer_vat_id=value(t.ext_buyer_vat_id).as_text(),
            min_price_margin=value(t.ext_min_price_margin).as_number(),
            min_price_vat21=value(t.ext_min_price_vat21).as_number(),
            min_price_vat0=value(t.ext_min_price_vat0).as_number(),
            exception_approved=not value(t.ext_exception_approved).is_empty,
            order_id=value(t.ext_order_id).as_text(),
            size=value(t.ext_size).as_text(),
            linked_sale_id=value(t.ext_linked_sale).first_id,
        )
