"""
Confirmation — подтверждённые условия сделки по заказу

Пишется один раз ApprovalStateMachine, затем читается и дополняется
финализацией.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.core.domain.vat import DealStatus, OfferStatus, VatRegime


class Confirmation(BaseModel):
    """Условия, зафиксированные после клика победившего продавца"""

    order_record_id: str = Field(..., min_length=1)
    confirmed_price: Optional[float] = Field(None, ge=0, description="Подтверждённая цена (2 знака)")
    confirmed_seller_id: str = Field(..., min_length=1, description="Seller record id (linked)")
    confirmed_inventory_id: Optional[str] = Field(None, description="Inventory запись для списания")
    vat_type: Optional[VatRegime] = Field(None, description="VAT-тип из решения decision engine")
    offer_status: OfferStatus = Field(OfferStatus.CONFIRMED)
    deal_status: DealStatus = Field(DealStatus.CLOSING)

    model_config = ConfigDict(frozen=True)
