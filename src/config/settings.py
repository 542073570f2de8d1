"""
Settings — конфигурация сервиса из окружения

Settings: ключи доступа к collaborator'ам и параметры HTTP сервера.
TableConfig: имена таблиц и полей record store (переопределяются env
переменными с теми же именами, что и в исходном деплое).

Источник: переменные окружения, дополнительно .env файл (python-dotenv,
значения окружения имеют приоритет).
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv


def _env_flag(value: Optional[str]) -> bool:
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


# =============================================================================
# TABLE CONFIG
# =============================================================================


@dataclass(frozen=True)
class TableConfig:
    """
    Имена таблиц и полей record store.

    Каждое имя переопределяется env переменной из metadata["env"]
    (например, table_inventory ← AIRTABLE_TABLE_INVENTORY).
    """

    # --- Таблицы
    table_inventory: str = field(default="Inventory", metadata={"env": "AIRTABLE_TABLE_INVENTORY"})
    table_offer_messages: str = field(default="Offer Messages", metadata={"env": "AIRTABLE_TABLE_OFFER_MSGS"})
    table_external: str = field(default="External Sales Log", metadata={"env": "AIRTABLE_TABLE_EXTERNAL"})
    table_sales: str = field(default="Sales", metadata={"env": "AIRTABLE_TABLE_SALES"})
    table_affiliate_sales: str = field(default="Affiliate Sales", metadata={"env": "AIRTABLE_TABLE_AFFILIATE"})

    # --- Inventory
    inv_quantity: str = field(default="Quantity", metadata={"env": "FIELD_INV_QTY"})
    inv_linked_seller: str = field(default="Linked Seller", metadata={"env": "FIELD_INV_LINKED_SELLER"})
    inv_seller_record_id: str = field(default="Seller Record ID", metadata={"env": "FIELD_INV_SELLER_RECORD_ID"})
    inv_sku_record_id: str = field(default="SKU Record ID", metadata={"env": "FIELD_INV_SKU_RECORD_ID"})

    # --- Offer Messages
    offers_order_id: str = field(default="Order Record ID", metadata={"env": "FIELD_OFFERS_ORDER_ID"})
    offers_channel_id: str = field(default="Channel ID", metadata={"env": "FIELD_OFFERS_CHANNEL_ID"})
    offers_message_id: str = field(default="Message ID", metadata={"env": "FIELD_OFFERS_MESSAGE_ID"})
    offers_seller_id: str = field(default="Seller ID", metadata={"env": "FIELD_OFFERS_SELLER_ID"})
    offers_inventory_id: str = field(default="Inventory Record ID", metadata={"env": "FIELD_OFFERS_INV_ID"})
    offers_price: str = field(default="Offer Price", metadata={"env": "FIELD_OFFERS_OFFER_PRICE"})

    # --- External Sales Log (заказ)
    ext_order_id: str = field(default="Order ID", metadata={"env": "FIELD_EXT_ORDER_ID"})
    ext_offer_status: str = field(default="Offer Status", metadata={"env": "FIELD_OFFER_STATUS"})
    ext_confirmed_price: str = field(default="Confirmed Offer Price", metadata={"env": "FIELD_CONFIRMED_PRICE"})
    ext_confirmed_seller: str = field(default="Confirmed Seller", metadata={"env": "FIELD_CONFIRMED_SELLER"})
    ext_confirmed_inventory: str = field(default="Confirmed Inventory", metadata={"env": "FIELD_CONFIRMED_INVENTORY"})
    ext_offer_vat_type: str = field(default="Offer VAT Type", metadata={"env": "FIELD_OFFER_VAT_TYPE"})
    ext_deal_status: str = field(default="Deal Status", metadata={"env": "FIELD_DEAL_STATUS"})
    ext_feedback: str = field(default="Bot Feedback", metadata={"env": "FIELD_FEEDBACK"})
    ext_final_price: str = field(default="Final Deal Price", metadata={"env": "FIELD_FINAL_DEAL_PRICE"})
    ext_buyer: str = field(default="Buyer", metadata={"env": "FIELD_BUYER"})
    ext_buyer_country: str = field(default="Buyer Country", metadata={"env": "FIELD_BUYER_COUNTRY"})
    ext_buyer_vat_id: str = field(default="Buyer VAT ID", metadata={"env": "FIELD_BUYER_VAT_ID"})
    ext_shipping_label: str = field(default="Shipping Label", metadata={"env": "FIELD_SHIPPING_LABEL"})
    ext_sku: str = field(default="SKU", metadata={"env": "FIELD_SKU"})
    ext_size: str = field(default="Size", metadata={"env": "FIELD_SIZE"})
    ext_selling_vat_type: str = field(default="Selling VAT Type", metadata={"env": "FIELD_SELLING_VAT_TYPE"})
    ext_min_price_margin: str = field(
        default="Minimum Deal Price (Margin)", metadata={"env": "FIELD_MIN_PRICE_MARGIN"}
    )
    ext_min_price_vat21: str = field(default="Minimum Deal Price (VAT21)", metadata={"env": "FIELD_MIN_PRICE_VAT21"})
    ext_min_price_vat0: str = field(default="Minimum Deal Price (VAT0)", metadata={"env": "FIELD_MIN_PRICE_VAT0"})
    ext_exception_approved: str = field(default="Exception Approved?", metadata={"env": "FIELD_EXCEPTION_APPROVED"})
    ext_linked_sale: str = field(default="Linked Sale", metadata={"env": "FIELD_LINKED_SALE"})

    # --- Sales
    sales_sku: str = field(default="SKU", metadata={"env": "FIELD_SALES_SKU"})
    sales_size: str = field(default="Size", metadata={"env": "FIELD_SALES_SIZE"})
    sales_seller: str = field(default="Seller", metadata={"env": "FIELD_SALES_SELLER"})
    sales_buyer: str = field(default="Buyer", metadata={"env": "FIELD_SALES_BUYER"})
    sales_inventory: str = field(default="Inventory", metadata={"env": "FIELD_SALES_INVENTORY"})
    sales_purchase_price: str = field(default="Purchase Price", metadata={"env": "FIELD_SALES_PURCHASE_PRICE"})
    sales_selling_price: str = field(default="Selling Price", metadata={"env": "FIELD_SALES_SELLING_PRICE"})
    sales_vat_type: str = field(default="VAT Type", metadata={"env": "FIELD_SALES_VAT_TYPE"})
    sales_order_id: str = field(default="Order ID", metadata={"env": "FIELD_SALES_ORDER_ID"})
    sales_shipping_label: str = field(default="Shipping Label", metadata={"env": "FIELD_SALES_SHIPPING_LABEL"})
    sales_external_record: str = field(default="External Sales Log", metadata={"env": "FIELD_SALES_EXTERNAL"})

    # --- Affiliate Sales
    aff_sale: str = field(default="Sales", metadata={"env": "FIELD_AFF_SALE"})
    aff_seller: str = field(default="Seller", metadata={"env": "FIELD_AFF_SELLER"})
    aff_payout: str = field(default="Payout Amount", metadata={"env": "FIELD_AFF_PAYOUT"})
    aff_vat_type: str = field(default="VAT Type", metadata={"env": "FIELD_AFF_VAT_TYPE"})
    aff_status: str = field(default="Payout Status", metadata={"env": "FIELD_AFF_STATUS"})

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TableConfig":
        """Переопределение имён из окружения (пустые значения игнорируются)"""
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            value = environ.get(f.metadata["env"])
            if value:
                overrides[f.name] = value
        return cls(**overrides)


# =============================================================================
# SETTINGS
# =============================================================================


@dataclass(frozen=True)
class Settings:
    """Конфигурация процесса."""

    airtable_api_key: str = ""
    airtable_base_id: str = ""

    discord_bot_token: str = ""
    discord_guild_id: Optional[str] = None
    discord_channel_id: Optional[str] = None
    discord_public_key: Optional[str] = None
    allow_channel_create: bool = False
    external_channel_name: str = "offer-inquiries"
    confirmation_channel_name: str = "confirmation-requests"

    incoming_bot_key: Optional[str] = None

    port: int = 3000
    log_level: str = "INFO"

    # Таймаут исходящих HTTP вызовов collaborator'ов (секунды)
    http_timeout_sec: float = 15.0

    tables: TableConfig = field(default_factory=TableConfig)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[Path] = None,
    ) -> "Settings":
        """
        Загрузка настроек.

        Args:
            environ: источник переменных (default: os.environ после load_dotenv)
            dotenv_path: путь к .env (default: поиск от текущей директории)
        """
        if environ is None:
            load_dotenv(dotenv_path=dotenv_path, override=False)
            environ = os.environ

        return cls(
            airtable_api_key=environ.get("AIRTABLE_API_KEY", ""),
            airtable_base_id=environ.get("AIRTABLE_BASE_ID", ""),
            discord_bot_token=environ.get("DISCORD_BOT_TOKEN", ""),
            discord_guild_id=environ.get("DISCORD_GUILD_ID") or None,
            discord_channel_id=environ.get("DISCORD_CHANNEL_ID") or None,
            discord_public_key=environ.get("DISCORD_PUBLIC_KEY") or None,
            allow_channel_create=_env_flag(environ.get("ALLOW_CHANNEL_CREATE")),
            external_channel_name=environ.get("EXTERNAL_CHANNEL_NAME") or "offer-inquiries",
            confirmation_channel_name=environ.get("CONFIRMATION_CHANNEL_NAME") or "confirmation-requests",
            incoming_bot_key=environ.get("INCOMING_BOT_KEY") or None,
            port=int(environ.get("PORT") or 3000),
            log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
            http_timeout_sec=float(environ.get("HTTP_TIMEOUT_SEC") or 15.0),
            tables=TableConfig.from_env(environ),
        )
