"""
Тесты для Negotiation Orchestrator

Покрытие:
- fan-out: offer / confirm по decision engine, цена кнопки, лог сообщений
- отказ при пустом заказе / списке продавцов
- пропуск продавцов с нечисловыми ценами
- ошибка одного продавца не прерывает остальных
- close_offers: best-effort отключение
"""

import pytest

from src.config.settings import TableConfig
from src.core.domain.order import Order, SellerOffer
from src.core.domain.vat import NegotiationMode, VatRegime
from src.integrations.offer_log import OfferMessageLog
from src.negotiation.orchestrator import DispatchStatus, NegotiationOrchestrator, OrderRejectedError
from tests.fakes import FakeMessagingGateway, InMemoryRecordStore

T = TableConfig()


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def messaging():
    return FakeMessagingGateway()


@pytest.fixture
def orchestrator(store, messaging):
    return NegotiationOrchestrator(messaging, OfferMessageLog(store, T))


@pytest.fixture
def order():
    return Order(record_id="recO1", order_id="1001", sku="DD1391-100", size="42")


def seller(seller_id: str, suggested, ours, vat="VAT21", country="", pct=21) -> SellerOffer:
    return SellerOffer.model_validate(
        {
            "sellerId": seller_id,
            "sellerName": f"Shop {seller_id}",
            "inventoryRecordId": f"recInv{seller_id}",
            "sellerSuggestedRaw": suggested,
            "baseOfferIncl": ours,
            "sellerVatType": vat,
            "sellerVatRatePct": pct,
            "sellerCountry": country,
        }
    )


# =============================================================================
# ТЕСТЫ: fan-out
# =============================================================================


class TestFanOut:
    """Тесты fan_out."""

    @pytest.mark.asyncio
    async def test_scenario_a_offer_sent(self, orchestrator, messaging, store, order):
        """A: seller=100, ours=90 → offer с кнопкой 90.00."""
        summary = await orchestrator.fan_out(order, [seller("S1", 100, 90)])

        assert summary.sent_count == 1
        result = summary.sent[0]
        assert result.kind == NegotiationMode.OFFER
        assert result.price == 90.00
        assert result.logged is True
        assert len(messaging.offers) == 1
        assert messaging.offers[0]["price"] == 90.00
        assert messaging.offers[0]["vat"] == VatRegime.VAT21

        logged = list(store.records(T.table_offer_messages).values())
        assert logged[0][T.offers_price] == 90.0
        assert logged[0][T.offers_message_id] == result.message_id

    @pytest.mark.asyncio
    async def test_scenario_b_confirm_sent(self, orchestrator, messaging, order):
        """B: ours=110 → confirm с суммой продавца 100.00."""
        summary = await orchestrator.fan_out(order, [seller("S1", 100, 110)])

        assert summary.sent[0].kind == NegotiationMode.CONFIRM
        assert messaging.confirmations[0]["price"] == 100.00
        assert messaging.offers == []

    @pytest.mark.asyncio
    async def test_scenario_c_vat0_nl(self, orchestrator, messaging, order):
        summary = await orchestrator.fan_out(order, [seller("S1", 100, 125, vat="VAT0", country="Netherlands")])

        result = summary.sent[0]
        assert result.kind == NegotiationMode.CONFIRM
        assert result.price == 121.00
        assert result.confirmed_vat_type == VatRegime.VAT21
        assert messaging.confirmations[0]["vat"] == VatRegime.VAT21

    @pytest.mark.asyncio
    async def test_payload_order_preserved(self, orchestrator, order):
        summary = await orchestrator.fan_out(order, [seller("S1", 100, 90), seller("S2", 100, 110), seller("S3", 80, 90)])
        assert [r.seller_id for r in summary.results] == ["S1", "S2", "S3"]
        assert [r.kind for r in summary.sent] == [NegotiationMode.OFFER, NegotiationMode.CONFIRM, NegotiationMode.CONFIRM]

    @pytest.mark.asyncio
    async def test_to_sent_dict(self, orchestrator, order):
        summary = await orchestrator.fan_out(order, [seller("S1", 100, 90)])
        assert summary.sent[0].to_sent_dict() == {
            "sellerId": "S1",
            "messageId": summary.sent[0].message_id,
            "kind": "offer",
            "confirmedVatType": "VAT21",
        }


class TestFanOutRejections:
    """Отказы и пропуски."""

    @pytest.mark.asyncio
    async def test_missing_order(self, orchestrator):
        with pytest.raises(OrderRejectedError):
            await orchestrator.fan_out(None, [seller("S1", 100, 90)])

    @pytest.mark.asyncio
    async def test_empty_sellers(self, orchestrator, order, messaging):
        with pytest.raises(OrderRejectedError):
            await orchestrator.fan_out(order, [])
        assert messaging.offers == []

    @pytest.mark.asyncio
    async def test_non_numeric_seller_skipped(self, orchestrator, messaging, order):
        summary = await orchestrator.fan_out(order, [seller("S1", "ask", 90), seller("S2", 100, 90)])

        assert [r.status for r in summary.results] == [DispatchStatus.SKIPPED, DispatchStatus.SENT]
        assert summary.skipped[0].reason == "non_numeric_prices"
        assert len(messaging.offers) == 1

    @pytest.mark.asyncio
    async def test_send_failure_isolated(self, orchestrator, messaging, order):
        messaging.fail_send_for.add("S1")

        summary = await orchestrator.fan_out(order, [seller("S1", 100, 90), seller("S2", 100, 90)])

        assert summary.failed[0].seller_id == "S1"
        assert summary.sent_count == 1
        assert summary.sent[0].seller_id == "S2"

    @pytest.mark.asyncio
    async def test_log_failure_does_not_undo_send(self, orchestrator, messaging, store, order):
        store.fail("create", T.table_offer_messages)

        summary = await orchestrator.fan_out(order, [seller("S1", 100, 90)])

        assert summary.sent_count == 1
        assert summary.sent[0].logged is False
        assert len(messaging.offers) == 1


# =============================================================================
# ТЕСТЫ: close_offers
# =============================================================================


class TestCloseOffers:
    """Тесты close_offers."""

    @pytest.mark.asyncio
    async def test_close_all(self, orchestrator, messaging, order):
        summary = await orchestrator.fan_out(order, [seller("S1", 100, 90), seller("S2", 100, 110)])

        result = await orchestrator.close_offers("recO1", "Sold elsewhere")

        assert result.attempted == 2
        assert result.failed == 0
        assert {mid for _, mid, _ in messaging.disabled} == {r.message_id for r in summary.sent}
        assert all(note == "✅ Sold elsewhere. Offers disabled." for _, _, note in messaging.disabled)

    @pytest.mark.asyncio
    async def test_default_reason_and_partial_failure(self, orchestrator, messaging, order):
        summary = await orchestrator.fan_out(order, [seller("S1", 100, 90), seller("S2", 100, 90)])
        messaging.fail_disable_for.add(summary.sent[0].message_id)

        result = await orchestrator.close_offers("recO1")

        assert result.attempted == 2
        assert result.failed == 1
        assert messaging.disabled == [(f"ch-S2", summary.sent[1].message_id, "✅ Closed. Offers disabled.")]

    @pytest.mark.asyncio
    async def test_close_unknown_order(self, orchestrator):
        result = await orchestrator.close_offers("recNone")
        assert result.attempted == 0
