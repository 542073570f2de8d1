"""
HTTP API — FastAPI приложение сервиса внешних офферов

Маршруты:
- GET  /                          — ping
- GET  /health                    — статус + число обработчиков кликов
- POST /external-offers           — fan-out заказа по продавцам
- POST /disable-offers            — закрытие всех сообщений заказа
- POST /finalize-external-deal    — финализация сделки
- POST /deal-update               — уведомление продавцу (x-bot-key)
- POST /discord/interactions      — клики Accept / Deny от Discord (Ed25519 подпись)
- POST /approval-events           — повторная доставка клика (custom_id + ссылки на сообщение)

Тела запросов проверяются JSON Schema контрактами (нарушение → 400).
Каждый маршрут ловит ошибки на внешнем уровне и отвечает JSON (500).
"""

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as ModelValidationError

from src.approval.state_machine import ApprovalResult, ApprovalStateMachine
from src.config.settings import Settings, TableConfig
from src.core.contracts import (
    ApprovalEventValidator,
    ContractValidator,
    DealUpdateValidator,
    DisableOffersValidator,
    ExternalOffersValidator,
    FinalizeRequestValidator,
)
from src.core.domain.messages import decode_custom_id
from src.core.domain.order import Order, SellerOffer
from src.finalization.pipeline import DealFinalizer
from src.integrations.discord_gateway import DiscordMessagingGateway
from src.integrations.discord_interactions import (
    INTERACTION_MESSAGE_COMPONENT,
    INTERACTION_PING,
    RESPONSE_DEFERRED_UPDATE_MESSAGE,
    RESPONSE_PONG,
    InteractionSignatureVerifier,
    parse_button_interaction,
)
from src.integrations.external_sales import ExternalSalesRepository
from src.integrations.inventory import InventoryRepository
from src.integrations.messaging import ApprovalEventRouter, MessagingGateway
from src.integrations.offer_log import OfferMessageLog
from src.integrations.record_store import AirtableRecordStore, RecordStore
from src.integrations.sales import SalesRepository
from src.negotiation.orchestrator import NegotiationOrchestrator, OrderRejectedError

log = logging.getLogger(__name__)


# =============================================================================
# SERVICES
# =============================================================================


@dataclass
class Services:
    """Собранные компоненты процесса"""

    messaging: MessagingGateway
    orchestrator: NegotiationOrchestrator
    approvals: ApprovalStateMachine
    finalizer: DealFinalizer
    router: ApprovalEventRouter

    # HTTP клиенты, закрываемые при остановке приложения
    clients: tuple[httpx.AsyncClient, ...] = field(default_factory=tuple)


def build_services(store: RecordStore, messaging: MessagingGateway, tables: TableConfig) -> Services:
    """
    Сборка компонентов поверх record store и messaging gateway.

    ApprovalStateMachine регистрируется в router как обработчик кликов.
    """
    offer_log = OfferMessageLog(store, tables)
    orders = ExternalSalesRepository(store, tables)
    inventory = InventoryRepository(store, tables)
    sales = SalesRepository(store, tables)

    approvals = ApprovalStateMachine(messaging, offer_log, orders, inventory)
    router = ApprovalEventRouter()
    router.on_approval_event(approvals.handle_event)

    return Services(
        messaging=messaging,
        orchestrator=NegotiationOrchestrator(messaging, offer_log),
        approvals=approvals,
        finalizer=DealFinalizer(orders, inventory, sales),
        router=router,
    )


def build_default_services(settings: Settings) -> Services:
    """Airtable + Discord по настройкам процесса"""
    airtable_client = httpx.AsyncClient(timeout=settings.http_timeout_sec)
    discord_client = httpx.AsyncClient(timeout=settings.http_timeout_sec)

    store = AirtableRecordStore(airtable_client, settings.airtable_base_id, settings.airtable_api_key)
    messaging = DiscordMessagingGateway(discord_client, settings)

    services = build_services(store, messaging, settings.tables)
    services.clients = (airtable_client, discord_client)
    return services


# =============================================================================
# HELPERS
# =============================================================================


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


async def _read_json(request: Request) -> Optional[Any]:
    """Тело запроса или None, если это не JSON"""
    try:
        return await request.json()
    except ValueError:
        return None


def _contract_error(validator: ContractValidator, payload: Any) -> Optional[str]:
    if payload is None:
        return "Request body must be JSON"
    return validator.first_error(payload)


# =============================================================================
# APP
# =============================================================================


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Фабрика приложения.

    Args:
        settings: настройки (default: Settings.from_env())
        services: готовые компоненты (default: Airtable + Discord)
    """
    settings = settings or Settings.from_env()
    services = services or build_default_services(settings)

    external_offers_contract = ExternalOffersValidator()
    disable_offers_contract = DisableOffersValidator()
    finalize_contract = FinalizeRequestValidator()
    deal_update_contract = DealUpdateValidator()
    approval_event_contract = ApprovalEventValidator()

    interaction_verifier = (
        InteractionSignatureVerifier(settings.discord_public_key) if settings.discord_public_key else None
    )

    async def dispatch_click(event) -> None:
        results = await services.router.dispatch(event)
        outcomes = [r.outcome.value for r in results if isinstance(r, ApprovalResult)]
        log.info("Click order=%s message=%s → %s", event.order_record_id, event.message_id, outcomes)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("External offers service started (handlers=%d)", services.router.handler_count)
        yield
        for client in services.clients:
            await client.aclose()

    app = FastAPI(title="External Offers Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.services = services

    @app.get("/")
    async def root():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {
            "ok": True,
            "approvalHandlers": services.router.handler_count,
            "ordersProcessing": len(services.approvals.locks),
            "interactionsEnabled": interaction_verifier is not None,
        }

    @app.post("/external-offers")
    async def external_offers(request: Request):
        try:
            payload = await _read_json(request)
            problem = _contract_error(external_offers_contract, payload)
            if problem:
                return _error(400, "Missing order or sellers in payload", details=problem)

            try:
                order = Order.model_validate(payload["order"])
                sellers = [SellerOffer.model_validate(s) for s in payload["sellers"]]
            except ModelValidationError as e:
                return _error(400, "Invalid order or sellers in payload", details=str(e))

            summary = await services.orchestrator.fan_out(order, sellers)
            return {
                "ok": True,
                "sentCount": summary.sent_count,
                "sent": [r.to_sent_dict() for r in summary.sent],
            }
        except OrderRejectedError as e:
            return _error(400, str(e))
        except Exception as e:
            log.exception("external-offers error")
            return _error(500, str(e))

    @app.post("/disable-offers")
    async def disable_offers(request: Request):
        try:
            payload = await _read_json(request)
            problem = _contract_error(disable_offers_contract, payload)
            if problem:
                return _error(400, "Missing orderRecId", details=problem)

            result = await services.orchestrator.close_offers(payload["orderRecId"], payload.get("reason"))
            return {"ok": True, "disabled": result.attempted, "failed": result.failed}
        except Exception as e:
            log.exception("disable-offers error")
            return _error(500, str(e))

    @app.post("/finalize-external-deal")
    async def finalize_external_deal(request: Request):
        try:
            payload = await _read_json(request)
            problem = _contract_error(finalize_contract, payload)
            if problem:
                return _error(400, "Missing recordId", details=problem)

            result = await services.finalizer.finalize(payload["recordId"])
            return JSONResponse(status_code=result.status_code, content=result.to_response())
        except Exception as e:
            log.exception("finalize-external-deal error")
            return _error(500, str(e))

    @app.post("/deal-update")
    async def deal_update(request: Request):
        try:
            expected = settings.incoming_bot_key
            if not expected or request.headers.get("x-bot-key") != expected:
                return _error(401, "Unauthorized")

            payload = await _read_json(request)
            problem = _contract_error(deal_update_contract, payload)
            if problem:
                return _error(400, "sellerName (or sellerId) and content are required", details=problem)

            seller_id = payload.get("sellerId") or None
            seller_name = payload.get("sellerName") or seller_id
            sent = await services.messaging.send_deal_update(
                seller_id, seller_name, payload["content"], payload.get("embed")
            )
            return {"ok": True, "messageId": sent.message_id, "channelId": sent.channel_id}
        except Exception as e:
            log.exception("deal-update error")
            return _error(500, str(e))

    @app.post("/discord/interactions")
    async def discord_interactions(request: Request, background_tasks: BackgroundTasks):
        try:
            if interaction_verifier is None:
                return _error(401, "Interactions endpoint is not configured")

            body = await request.body()
            if not interaction_verifier.verify(
                body,
                request.headers.get("x-signature-ed25519"),
                request.headers.get("x-signature-timestamp"),
            ):
                return _error(401, "invalid request signature")

            try:
                payload = json.loads(body)
            except ValueError:
                payload = None
            if not isinstance(payload, dict):
                return _error(400, "Request body must be a JSON object")

            kind = payload.get("type")
            if kind == INTERACTION_PING:
                return {"type": RESPONSE_PONG}
            if kind != INTERACTION_MESSAGE_COMPONENT:
                return _error(400, f"Unsupported interaction type: {kind}")

            try:
                event = parse_button_interaction(payload)
            except ValueError as e:
                return _error(400, str(e))

            # Discord ждёт ответ не дольше 3 секунд; клик обрабатывается после ответа
            if event is not None:
                background_tasks.add_task(dispatch_click, event)
            return {"type": RESPONSE_DEFERRED_UPDATE_MESSAGE}
        except Exception as e:
            log.exception("discord-interactions error")
            return _error(500, str(e))

    @app.post("/approval-events")
    async def approval_events(request: Request):
        try:
            payload = await _read_json(request)
            problem = _contract_error(approval_event_contract, payload)
            if problem:
                return _error(400, "Invalid approval event", details=problem)

            try:
                event = decode_custom_id(payload["custom_id"], payload["channel_id"], payload["message_id"])
            except ValueError as e:
                return _error(400, str(e))

            results = await services.router.dispatch(event)
            outcomes = [r.outcome.value for r in results if isinstance(r, ApprovalResult)]
            return {"ok": True, "outcomes": outcomes}
        except Exception as e:
            log.exception("approval-events error")
            return _error(500, str(e))

    return app
