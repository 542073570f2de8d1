"""
Тесты для Approval State Machine

Проверяемые свойства:
1. deny отключает только нажатое сообщение
2. confirm пишет условия ровно один раз и закрывает остальные сообщения
3. Идемпотентность: повторный клик по подтверждённому заказу ничего не пишет
4. Mutex: конкурентные клики по одному заказу → ровно один победитель
5. Ошибки шагов → FAILED, нажатое сообщение с пояснением, блокировка освобождена
6. Ошибки отключения соседних сообщений не ломают подтверждение
"""

import asyncio

import pytest

from src.approval.locks import OrderLockTable
from src.approval.state_machine import (
    NOTE_ALREADY_MATCHED,
    NOTE_BUSY,
    NOTE_FAILED,
    NOTE_SIBLING_CLOSED,
    ApprovalOutcome,
    ApprovalState,
    ApprovalStateMachine,
)
from src.config.settings import TableConfig
from src.core.domain.messages import ApprovalAction, ApprovalEvent, OfferMessage
from src.core.domain.vat import VatRegime
from src.integrations.external_sales import ExternalSalesRepository
from src.integrations.inventory import InventoryRepository
from src.integrations.offer_log import OfferMessageLog
from tests.fakes import FakeMessagingGateway, InMemoryRecordStore

T = TableConfig()


# =============================================================================
# FIXTURES
# =============================================================================


def build_machine(store: InMemoryRecordStore, messaging: FakeMessagingGateway) -> ApprovalStateMachine:
    return ApprovalStateMachine(
        messaging,
        OfferMessageLog(store, T),
        ExternalSalesRepository(store, T),
        InventoryRepository(store, T),
    )


async def seed_order(store: InMemoryRecordStore, sellers=("S1", "S2", "S3")) -> None:
    """Заказ recO1 + inventory + лог сообщений msg-S1.. для каждого продавца."""
    store.add(T.table_external, "recO1", {T.ext_order_id: "1001"})
    offer_log = OfferMessageLog(store, T)
    for seller_id in sellers:
        store.add(T.table_inventory, f"recInv{seller_id}", {T.inv_linked_seller: [f"recSeller{seller_id}"], T.inv_quantity: 1})
        await offer_log.log(
            OfferMessage(
                order_record_id="recO1",
                seller_id=seller_id,
                inventory_record_id=f"recInv{seller_id}",
                channel_id=f"ch-{seller_id}",
                message_id=f"msg-{seller_id}",
                price=90.0,
            )
        )


def click(seller_id: str, action: ApprovalAction = ApprovalAction.CONFIRM, price=90.0, vat="VAT21") -> ApprovalEvent:
    return ApprovalEvent(
        action=action.value,
        order_record_id="recO1",
        seller_id=seller_id,
        inventory_record_id=f"recInv{seller_id}",
        price=price,
        vat_label=vat,
        channel_id=f"ch-{seller_id}",
        message_id=f"msg-{seller_id}",
    )


def confirmation_patches(store: InMemoryRecordStore) -> list[dict]:
    return [
        fields for table, _, fields in store.patches if table == T.table_external and T.ext_confirmed_seller in fields
    ]


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def messaging():
    return FakeMessagingGateway()


# =============================================================================
# ТЕСТЫ: deny / confirm
# =============================================================================


class TestDeny:
    @pytest.mark.asyncio
    async def test_deny_disables_only_clicked(self, store, messaging):
        await seed_order(store)
        machine = build_machine(store, messaging)

        result = await machine.handle_event(click("S2", ApprovalAction.DENY))

        assert result.outcome == ApprovalOutcome.DENIED
        assert result.state == ApprovalState.OPEN
        assert messaging.disabled == [("ch-S2", "msg-S2", "❌ S2 denied / not available.")]
        assert store.patches == []


class TestConfirm:
    """Подтверждение победителя."""

    @pytest.mark.asyncio
    async def test_confirm_writes_terms_and_closes_siblings(self, store, messaging):
        await seed_order(store)
        machine = build_machine(store, messaging)

        result = await machine.handle_event(click("S1", price=82.64, vat="VAT0"))

        assert result.outcome == ApprovalOutcome.CONFIRMED
        assert result.state == ApprovalState.CONFIRMED
        assert result.siblings_attempted == 2
        assert result.siblings_failed == 0

        fields = store.fields(T.table_external, "recO1")
        assert fields[T.ext_offer_status] == "Confirmed"
        assert fields[T.ext_confirmed_price] == 82.64
        assert fields[T.ext_confirmed_seller] == ["recSellerS1"]
        assert fields[T.ext_confirmed_inventory] == ["recInvS1"]
        assert fields[T.ext_offer_vat_type] == "VAT0"
        assert fields[T.ext_deal_status] == "Closing"

        assert messaging.notes_for("msg-S1") == ["✅ Confirmed by S1."]
        assert messaging.notes_for("msg-S2") == [NOTE_SIBLING_CLOSED]
        assert messaging.notes_for("msg-S3") == [NOTE_SIBLING_CLOSED]
        assert not machine.locks.is_locked("recO1")

    @pytest.mark.asyncio
    async def test_confirmation_result_carries_terms(self, store, messaging):
        await seed_order(store)
        result = await build_machine(store, messaging).handle_event(click("S2", price=100.0, vat="Margin"))

        assert result.confirmation.confirmed_seller_id == "recSellerS2"
        assert result.confirmation.vat_type == VatRegime.MARGIN
        assert result.confirmation.confirmed_price == 100.0

    @pytest.mark.asyncio
    async def test_unknown_action_ignored(self, store, messaging):
        await seed_order(store)
        event = click("S1").model_copy(update={"action": "something_else"})

        result = await build_machine(store, messaging).handle_event(event)

        assert result.outcome == ApprovalOutcome.IGNORED
        assert messaging.disabled == []
        assert store.patches == []


# =============================================================================
# ТЕСТЫ: идемпотентность и mutex
# =============================================================================


class TestIdempotence:
    """Повторные и поздние клики."""

    @pytest.mark.asyncio
    async def test_second_click_after_confirm(self, store, messaging):
        await seed_order(store)
        machine = build_machine(store, messaging)

        first = await machine.handle_event(click("S1"))
        second = await machine.handle_event(click("S2"))

        assert first.outcome == ApprovalOutcome.CONFIRMED
        assert second.outcome == ApprovalOutcome.ALREADY_MATCHED
        assert len(confirmation_patches(store)) == 1
        assert store.fields(T.table_external, "recO1")[T.ext_confirmed_seller] == ["recSellerS1"]
        assert messaging.notes_for("msg-S2")[-1] == NOTE_ALREADY_MATCHED

    @pytest.mark.asyncio
    async def test_duplicate_delivery_same_click(self, store, messaging):
        await seed_order(store)
        machine = build_machine(store, messaging)

        await machine.handle_event(click("S1"))
        again = await machine.handle_event(click("S1"))

        assert again.outcome == ApprovalOutcome.ALREADY_MATCHED
        assert len(confirmation_patches(store)) == 1

    @pytest.mark.asyncio
    async def test_confirmed_in_store_by_other_instance(self, store, messaging):
        """Подтверждение, записанное другим инстансом, уважается."""
        await seed_order(store)
        store.fields(T.table_external, "recO1")[T.ext_offer_status] = "Confirmed"

        result = await build_machine(store, messaging).handle_event(click("S1"))

        assert result.outcome == ApprovalOutcome.ALREADY_MATCHED
        assert confirmation_patches(store) == []


class TestMutex:
    """Конкурентные клики по одному заказу."""

    @pytest.mark.asyncio
    async def test_concurrent_clicks_single_winner(self, messaging):
        store = InMemoryRecordStore(yield_control=True)
        await seed_order(store)
        machine = build_machine(store, messaging)

        results = await asyncio.gather(*(machine.handle_event(click(s)) for s in ("S1", "S2", "S3")))

        outcomes = [r.outcome for r in results]
        assert outcomes.count(ApprovalOutcome.CONFIRMED) == 1
        assert set(outcomes) <= {ApprovalOutcome.CONFIRMED, ApprovalOutcome.BUSY, ApprovalOutcome.ALREADY_MATCHED}
        assert len(confirmation_patches(store)) == 1
        assert len(machine.locks) == 0

    @pytest.mark.asyncio
    async def test_busy_click_is_closed(self, store, messaging):
        await seed_order(store)
        locks = OrderLockTable()
        machine = ApprovalStateMachine(
            messaging, OfferMessageLog(store, T), ExternalSalesRepository(store, T), InventoryRepository(store, T), locks
        )
        assert locks.try_acquire("recO1")

        result = await machine.handle_event(click("S2"))

        assert result.outcome == ApprovalOutcome.BUSY
        assert result.state == ApprovalState.PROCESSING
        assert messaging.notes_for("msg-S2") == [NOTE_BUSY]
        assert confirmation_patches(store) == []
        # Чужая блокировка не освобождается
        assert locks.is_locked("recO1")

    @pytest.mark.asyncio
    async def test_different_orders_independent(self, store, messaging):
        await seed_order(store)
        store.add(T.table_external, "recO2", {})
        machine = build_machine(store, messaging)
        other = click("S1").model_copy(update={"order_record_id": "recO2", "message_id": "msg-O2"})

        results = await asyncio.gather(machine.handle_event(click("S1")), machine.handle_event(other))

        assert [r.outcome for r in results] == [ApprovalOutcome.CONFIRMED, ApprovalOutcome.CONFIRMED]


# =============================================================================
# ТЕСТЫ: ошибки
# =============================================================================


class TestFailures:
    """Ошибки collaborator'ов."""

    @pytest.mark.asyncio
    async def test_missing_linked_seller_fails_and_releases(self, store, messaging):
        await seed_order(store)
        store.fields(T.table_inventory, "recInvS1")[T.inv_linked_seller] = []
        machine = build_machine(store, messaging)

        result = await machine.handle_event(click("S1"))

        assert result.outcome == ApprovalOutcome.FAILED
        assert not machine.locks.is_locked("recO1")
        assert confirmation_patches(store) == []
        # Продавец видит объяснение, а не тишину
        assert messaging.notes_for("msg-S1") == [NOTE_FAILED]
        assert messaging.notes_for("msg-S2") == []

        # После исправления данных повторная доставка проходит
        store.fields(T.table_inventory, "recInvS1")[T.inv_linked_seller] = ["recSellerS1"]
        retry = await machine.handle_event(click("S1"))
        assert retry.outcome == ApprovalOutcome.CONFIRMED

    @pytest.mark.asyncio
    async def test_store_read_failure(self, store, messaging):
        await seed_order(store)
        store.fail("get", T.table_external)
        machine = build_machine(store, messaging)

        result = await machine.handle_event(click("S1"))

        assert result.outcome == ApprovalOutcome.FAILED
        assert len(machine.locks) == 0
        assert messaging.notes_for("msg-S1") == [NOTE_FAILED]

    @pytest.mark.asyncio
    async def test_failure_note_not_delivered(self, store, messaging):
        """Ошибка отключения сообщения не меняет результат FAILED."""
        await seed_order(store)
        store.fail("get", T.table_external)
        messaging.fail_disable_for.add("msg-S1")

        result = await build_machine(store, messaging).handle_event(click("S1"))

        assert result.outcome == ApprovalOutcome.FAILED

    @pytest.mark.asyncio
    async def test_sibling_disable_failures_tolerated(self, store, messaging):
        await seed_order(store)
        messaging.fail_disable_for.add("msg-S2")

        result = await build_machine(store, messaging).handle_event(click("S1"))

        assert result.outcome == ApprovalOutcome.CONFIRMED
        assert result.siblings_attempted == 2
        assert result.siblings_failed == 1
        assert messaging.notes_for("msg-S3") == [NOTE_SIBLING_CLOSED]

    @pytest.mark.asyncio
    async def test_sibling_listing_failure_tolerated(self, store, messaging):
        await seed_order(store)
        store.fail("query", T.table_offer_messages)

        result = await build_machine(store, messaging).handle_event(click("S1"))

        assert result.outcome == ApprovalOutcome.CONFIRMED
        assert result.siblings_attempted == 0


class TestOrderLockTable:
    def test_injected_empty_table_is_used(self, store, messaging):
        """Пустая таблица (len == 0) не подменяется новой."""
        locks = OrderLockTable()
        machine = ApprovalStateMachine(
            messaging, OfferMessageLog(store, T), ExternalSalesRepository(store, T), InventoryRepository(store, T), locks
        )
        assert machine.locks is locks

    def test_hold_releases(self):
        locks = OrderLockTable()
        with locks.hold("recO1") as acquired:
            assert acquired
            assert locks.is_locked("recO1")
            with locks.hold("recO1") as nested:
                assert not nested
            assert locks.is_locked("recO1")
        assert not locks.is_locked("recO1")

    def test_hold_releases_on_error(self):
        locks = OrderLockTable()
        with pytest.raises(RuntimeError):
            with locks.hold("recO1"):
                raise RuntimeError("boom")
        assert len(locks) == 0
