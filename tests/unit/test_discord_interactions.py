"""
Тесты для Discord Interactions endpoint

Подпись Ed25519 формируется тестовым ключом (nacl.signing.SigningKey).

Покрытие:
- InteractionSignatureVerifier: верная / чужая / битая подпись
- parse_button_interaction: кнопка, не-кнопка, ссылки на сообщение
- POST /discord/interactions: PING → PONG, 401, клик → type 6 + обработка
  в фоне, некорректный custom_id → 400
"""

import json

import pytest
from fastapi.testclient import TestClient
from nacl.signing import SigningKey

from src.api.app import build_services, create_app
from src.config.settings import Settings, TableConfig
from src.core.domain.messages import ApprovalAction, encode_custom_id
from src.integrations.discord_interactions import (
    RESPONSE_DEFERRED_UPDATE_MESSAGE,
    RESPONSE_PONG,
    InteractionSignatureVerifier,
    parse_button_interaction,
)
from tests.fakes import FakeMessagingGateway, InMemoryRecordStore

T = TableConfig()

TIMESTAMP = "1760000000"


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def signing_key():
    return SigningKey.generate()


@pytest.fixture
def public_key_hex(signing_key):
    return signing_key.verify_key.encode().hex()


@pytest.fixture
def store():
    store = InMemoryRecordStore()
    store.add(T.table_external, "recO1", {T.ext_order_id: "1001"})
    store.add(T.table_inventory, "recInvS1", {T.inv_linked_seller: ["recSellerS1"], T.inv_quantity: 1})
    store.add(T.table_inventory, "recInvS2", {T.inv_linked_seller: ["recSellerS2"], T.inv_quantity: 1})
    return store


@pytest.fixture
def messaging():
    return FakeMessagingGateway()


@pytest.fixture
def client(store, messaging, public_key_hex):
    settings = Settings(discord_public_key=public_key_hex)
    app = create_app(settings, build_services(store, messaging, settings.tables))
    with TestClient(app) as client:
        yield client


def signed_headers(signing_key: SigningKey, body: bytes, timestamp: str = TIMESTAMP) -> dict:
    signature = signing_key.sign(timestamp.encode() + body).signature.hex()
    return {
        "content-type": "application/json",
        "x-signature-ed25519": signature,
        "x-signature-timestamp": timestamp,
    }


def post_signed(client: TestClient, signing_key: SigningKey, payload: dict):
    body = json.dumps(payload).encode()
    return client.post("/discord/interactions", content=body, headers=signed_headers(signing_key, body))


def button_payload(custom_id: str, channel_id: str, message_id: str, component_type: int = 2) -> dict:
    return {
        "type": 3,
        "channel_id": channel_id,
        "data": {"component_type": component_type, "custom_id": custom_id},
        "message": {"id": message_id, "channel_id": channel_id},
    }


def offers_payload() -> dict:
    return {
        "order": {"airtableRecordId": "recO1", "orderId": "1001", "sku": "DD1391-100", "size": "42"},
        "sellers": [
            {
                "sellerId": "S1",
                "sellerName": "Shop 1",
                "inventoryRecordId": "recInvS1",
                "sellerSuggestedRaw": 100,
                "baseOfferIncl": 90,
                "sellerVatType": "VAT21",
            },
            {
                "sellerId": "S2",
                "sellerName": "Shop 2",
                "inventoryRecordId": "recInvS2",
                "sellerSuggestedRaw": 100,
                "baseOfferIncl": 110,
                "sellerVatType": "VAT21",
            },
        ],
    }


# =============================================================================
# ТЕСТЫ: подпись
# =============================================================================


class TestInteractionSignatureVerifier:
    """Ed25519 над timestamp + body."""

    def test_valid_signature(self, signing_key, public_key_hex):
        verifier = InteractionSignatureVerifier(public_key_hex)
        body = b'{"type":1}'
        headers = signed_headers(signing_key, body)

        assert verifier.verify(body, headers["x-signature-ed25519"], TIMESTAMP)

    def test_tampered_body(self, signing_key, public_key_hex):
        verifier = InteractionSignatureVerifier(public_key_hex)
        headers = signed_headers(signing_key, b'{"type":1}')

        assert not verifier.verify(b'{"type":3}', headers["x-signature-ed25519"], TIMESTAMP)

    def test_timestamp_is_signed(self, signing_key, public_key_hex):
        verifier = InteractionSignatureVerifier(public_key_hex)
        body = b'{"type":1}'
        headers = signed_headers(signing_key, body)

        assert not verifier.verify(body, headers["x-signature-ed25519"], "1760000001")

    def test_foreign_key(self, public_key_hex):
        verifier = InteractionSignatureVerifier(public_key_hex)
        body = b'{"type":1}'
        headers = signed_headers(SigningKey.generate(), body)

        assert not verifier.verify(body, headers["x-signature-ed25519"], TIMESTAMP)

    @pytest.mark.parametrize("signature", [None, "", "not-hex", "abcd"])
    def test_malformed_signature(self, public_key_hex, signature):
        verifier = InteractionSignatureVerifier(public_key_hex)
        assert not verifier.verify(b"{}", signature, TIMESTAMP)

    def test_missing_timestamp(self, signing_key, public_key_hex):
        verifier = InteractionSignatureVerifier(public_key_hex)
        headers = signed_headers(signing_key, b"{}")
        assert not verifier.verify(b"{}", headers["x-signature-ed25519"], None)

    def test_invalid_public_key(self):
        with pytest.raises(ValueError):
            InteractionSignatureVerifier("zz")


# =============================================================================
# ТЕСТЫ: разбор interaction
# =============================================================================


class TestParseButtonInteraction:
    """MESSAGE_COMPONENT → ApprovalEvent."""

    def test_button(self):
        custom_id = encode_custom_id(ApprovalAction.DENY, "recO1", "S1", "recInvS1", 90.0, "VAT21")

        event = parse_button_interaction(button_payload(custom_id, "ch-S1", "msg-1"))

        assert event.action == ApprovalAction.DENY.value
        assert event.order_record_id == "recO1"
        assert event.channel_id == "ch-S1"
        assert event.message_id == "msg-1"

    def test_channel_from_message(self):
        custom_id = encode_custom_id(ApprovalAction.CONFIRM, "recO1", "S1", "recInvS1", 90.0, "VAT21")
        payload = button_payload(custom_id, "ch-S1", "msg-1")
        payload.pop("channel_id")

        event = parse_button_interaction(payload)

        assert event.channel_id == "ch-S1"

    def test_not_a_button(self):
        assert parse_button_interaction(button_payload("x", "ch-S1", "msg-1", component_type=3)) is None
        assert parse_button_interaction({"type": 3}) is None

    def test_malformed_custom_id(self):
        with pytest.raises(ValueError):
            parse_button_interaction(button_payload("garbage", "ch-S1", "msg-1"))


# =============================================================================
# ТЕСТЫ: endpoint
# =============================================================================


class TestInteractionsEndpoint:
    """POST /discord/interactions."""

    def test_ping(self, client, signing_key):
        response = post_signed(client, signing_key, {"type": 1})

        assert response.status_code == 200
        assert response.json() == {"type": RESPONSE_PONG}

    def test_bad_signature_401(self, client):
        body = b'{"type":1}'
        headers = signed_headers(SigningKey.generate(), body)
        response = client.post("/discord/interactions", content=body, headers=headers)
        assert response.status_code == 401

    def test_unsigned_401(self, client):
        response = client.post("/discord/interactions", json={"type": 1})
        assert response.status_code == 401

    def test_not_configured_401(self, store, messaging, signing_key):
        app = create_app(Settings(), build_services(store, messaging, T))
        with TestClient(app) as client:
            response = post_signed(client, signing_key, {"type": 1})
            assert client.get("/health").json()["interactionsEnabled"] is False
        assert response.status_code == 401

    def test_button_click_confirms_in_background(self, client, signing_key, store, messaging):
        first, second = client.post("/external-offers", json=offers_payload()).json()["sent"]
        custom_id = encode_custom_id(ApprovalAction.CONFIRM, "recO1", "S1", "recInvS1", 90.0, "VAT21")

        response = post_signed(client, signing_key, button_payload(custom_id, "ch-S1", first["messageId"]))

        assert response.status_code == 200
        assert response.json() == {"type": RESPONSE_DEFERRED_UPDATE_MESSAGE}
        assert store.fields(T.table_external, "recO1")[T.ext_confirmed_seller] == ["recSellerS1"]
        assert messaging.notes_for(second["messageId"]) == ["✅ Confirmed by another seller. Offers closed."]

    def test_non_button_component_is_acknowledged(self, client, signing_key, store):
        response = post_signed(client, signing_key, button_payload("x", "ch-S1", "msg-1", component_type=3))

        assert response.json() == {"type": RESPONSE_DEFERRED_UPDATE_MESSAGE}
        assert T.ext_confirmed_seller not in store.fields(T.table_external, "recO1")

    def test_malformed_custom_id_400(self, client, signing_key):
        response = post_signed(client, signing_key, button_payload("garbage", "ch-S1", "msg-1"))
        assert response.status_code == 400

    def test_unsupported_type_400(self, client, signing_key):
        assert post_signed(client, signing_key, {"type": 2}).status_code == 400

    def test_signed_non_object_400(self, client, signing_key):
        body = b"[1, 2]"
        response = client.post("/discord/interactions", content=body, headers=signed_headers(signing_key, body))
        assert response.status_code == 400

    def test_health_reports_enabled(self, client):
        assert client.get("/health").json()["interactionsEnabled"] is True
