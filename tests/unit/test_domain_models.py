"""
Тесты для Domain Models

Покрытие:
- Order / SellerOffer: алиасы payload, толерантный разбор, immutability
- custom_id кнопок: кодирование, разбор, лимит длины
- Confirmation: значения по умолчанию
"""

import pytest
from pydantic import ValidationError

from src.core.domain.confirmation import Confirmation
from src.core.domain.messages import (
    ApprovalAction,
    ApprovalEvent,
    OfferMessage,
    decode_custom_id,
    encode_custom_id,
)
from src.core.domain.order import Order, SellerOffer
from src.core.domain.vat import DealStatus, OfferStatus, VatRegime


# =============================================================================
# ORDER / SELLER OFFER
# =============================================================================


class TestOrder:
    """Тесты Order."""

    def test_from_payload_aliases(self):
        order = Order.model_validate({"airtableRecordId": "recO1", "orderId": 1001, "sku": "DD1391-100", "size": 42})
        assert order.record_id == "recO1"
        assert order.order_id == "1001"
        assert order.size == "42"
        assert order.display_id == "1001"

    def test_display_id_falls_back_to_record(self):
        assert Order(record_id="recO1").display_id == "recO1"

    def test_record_id_required(self):
        with pytest.raises(ValidationError):
            Order.model_validate({"orderId": "1001"})
        with pytest.raises(ValidationError):
            Order.model_validate({"airtableRecordId": ""})

    def test_frozen(self):
        order = Order(record_id="recO1")
        with pytest.raises(ValidationError):
            order.sku = "X"


class TestSellerOffer:
    """Тесты SellerOffer."""

    def test_from_payload(self):
        seller = SellerOffer.model_validate(
            {
                "sellerId": "S1",
                "sellerName": "Sneaker Shop",
                "inventoryRecordId": "recInv1",
                "sellerSuggestedRaw": "€100",
                "baseOfferIncl": 90,
                "sellerVatType": "VAT21",
                "sellerVatRatePct": "21",
                "sellerCountry": "NL",
            }
        )
        assert seller.seller_suggested_raw == 100.0
        assert seller.base_offer_incl == 90.0
        assert seller.seller_vat_pct == 21.0
        assert seller.display_name == "Sneaker Shop"

    def test_unparseable_price_becomes_none(self):
        seller = SellerOffer.model_validate({"sellerId": "S1", "sellerSuggestedRaw": "ask me", "baseOfferIncl": 90})
        assert seller.seller_suggested_raw is None

    def test_defaults(self):
        seller = SellerOffer.model_validate({"sellerId": 7})
        assert seller.seller_id == "7"
        assert seller.seller_vat_pct == 21.0
        assert seller.seller_country == ""
        assert seller.display_name == "7"

    def test_null_country(self):
        assert SellerOffer.model_validate({"sellerId": "S1", "sellerCountry": None}).seller_country == ""


# =============================================================================
# CUSTOM_ID
# =============================================================================


class TestCustomId:
    """Тесты кодирования кнопок."""

    def test_encode(self):
        custom_id = encode_custom_id(ApprovalAction.CONFIRM, "recO1", "S1", "recInv1", 90, "VAT21")
        assert custom_id == "confirm_ext|recO1|S1|recInv1|90.00|VAT21"

    def test_encode_missing_parts(self):
        custom_id = encode_custom_id(ApprovalAction.DENY, "recO1", "S1", None, None, None)
        assert custom_id == "deny_ext|recO1|S1||0|"

    def test_encode_too_long(self):
        with pytest.raises(ValueError, match="too long"):
            encode_custom_id(ApprovalAction.CONFIRM, "rec" + "x" * 100, "S1", "recInv1", 90, "VAT21")

    def test_decode(self):
        event = decode_custom_id("confirm_ext|recO1|S1|recInv1|82.64|VAT0", "ch1", "m1")
        assert event.is_confirm
        assert event.order_record_id == "recO1"
        assert event.seller_id == "S1"
        assert event.inventory_record_id == "recInv1"
        assert event.price == 82.64
        assert event.vat_label == "VAT0"
        assert (event.channel_id, event.message_id) == ("ch1", "m1")

    def test_decode_short_legacy(self):
        """Старые кнопки без цены и VAT."""
        event = decode_custom_id("deny_ext|recO1|S1", "ch1", "m1")
        assert event.is_deny
        assert event.price is None
        assert event.vat_label is None
        assert event.inventory_record_id == ""

    @pytest.mark.parametrize("bad", ["", "confirm_ext", "|recO1", "confirm_ext|"])
    def test_decode_malformed(self, bad):
        with pytest.raises(ValueError):
            decode_custom_id(bad, "ch1", "m1")

    def test_unknown_action_is_neither(self):
        event = ApprovalEvent(action="other", order_record_id="recO1", channel_id="c", message_id="m")
        assert not event.is_confirm
        assert not event.is_deny


class TestOfferMessage:
    def test_ref(self):
        message = OfferMessage(order_record_id="recO1", channel_id="c1", message_id="m1", price=90.0)
        assert message.ref == ("c1", "m1")


class TestConfirmation:
    def test_defaults(self):
        confirmation = Confirmation(
            order_record_id="recO1",
            confirmed_price=90.0,
            confirmed_seller_id="recSeller1",
            vat_type=VatRegime.VAT21,
        )
        assert confirmation.offer_status == OfferStatus.CONFIRMED
        assert confirmation.deal_status == DealStatus.CLOSING
        assert confirmation.confirmed_inventory_id is None

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            Confirmation(order_record_id="recO1", confirmed_price=-1, confirmed_seller_id="recSeller1")
