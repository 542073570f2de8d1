"""
Тесты для ApprovalEventRouter

Покрытие:
- Регистрация обработчиков (в том числе декоратором)
- Конкурентная доставка, результаты в порядке регистрации
- Упавший обработчик → None, остальные отрабатывают
"""

import asyncio
import logging

import pytest

from src.core.domain.messages import ApprovalEvent
from src.integrations.messaging import ApprovalEventRouter


def make_event(**overrides) -> ApprovalEvent:
    data = {
        "action": "confirm_ext",
        "order_record_id": "recO1",
        "seller_id": "S1",
        "channel_id": "ch-S1",
        "message_id": "msg-1",
    }
    data.update(overrides)
    return ApprovalEvent(**data)


class TestRegistration:
    def test_empty_router(self):
        assert ApprovalEventRouter().handler_count == 0

    @pytest.mark.asyncio
    async def test_decorator_registration(self):
        router = ApprovalEventRouter()

        @router.on_approval_event
        async def handler(event):
            return event.order_record_id

        assert router.handler_count == 1
        assert await handler(make_event()) == "recO1"
        assert await router.dispatch(make_event()) == ["recO1"]

    @pytest.mark.asyncio
    async def test_no_handlers(self):
        assert await ApprovalEventRouter().dispatch(make_event()) == []


class TestDispatch:
    """Доставка одного события всем обработчикам."""

    @pytest.mark.asyncio
    async def test_results_in_registration_order(self):
        router = ApprovalEventRouter()

        async def slow(event):
            await asyncio.sleep(0.02)
            return "slow"

        async def fast(event):
            return "fast"

        router.on_approval_event(slow)
        router.on_approval_event(fast)

        assert await router.dispatch(make_event()) == ["slow", "fast"]

    @pytest.mark.asyncio
    async def test_handlers_run_concurrently(self):
        router = ApprovalEventRouter()
        second_started = asyncio.Event()

        async def waits_for_second(event):
            await asyncio.wait_for(second_started.wait(), timeout=1)
            return "first"

        async def second(event):
            second_started.set()
            return "second"

        router.on_approval_event(waits_for_second)
        router.on_approval_event(second)

        assert await router.dispatch(make_event()) == ["first", "second"]

    @pytest.mark.asyncio
    async def test_failing_handler_isolated(self, caplog):
        router = ApprovalEventRouter()
        seen: list[str] = []

        async def broken(event):
            raise RuntimeError("boom")

        async def healthy(event):
            seen.append(event.message_id)
            return "ok"

        router.on_approval_event(broken)
        router.on_approval_event(healthy)

        with caplog.at_level(logging.ERROR, logger="src.integrations.messaging"):
            results = await router.dispatch(make_event(message_id="msg-7"))

        assert results == [None, "ok"]
        assert seen == ["msg-7"]
        assert "Approval handler failed" in caplog.text
        assert "recO1" in caplog.text
