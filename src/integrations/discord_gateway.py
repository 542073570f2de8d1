"""
Discord Gateway — MessagingGateway поверх Discord REST API v10

Каналы продавцов: категория с именем продавца, внутри текстовые каналы
- offer-inquiries (EXTERNAL_CHANNEL_NAME) — офферы
- confirmation-requests — запросы подтверждения
- deal-updates — уведомления по сделкам

Без DISCORD_GUILD_ID всё уходит в DISCORD_CHANNEL_ID. Отсутствующие
категории/каналы создаются только при ALLOW_CHANNEL_CREATE=true.

Клики по кнопкам приходят на POST /discord/interactions (discord_interactions)
и передаются в ApprovalEventRouter; здесь только исходящий REST.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Final, Optional

import httpx

from src.config.settings import Settings
from src.core.domain.messages import ApprovalAction, SentMessage, encode_custom_id
from src.core.domain.order import Order, SellerOffer
from src.core.domain.vat import VatRegime
from src.core.math.numerical_safeguards import MISSING_AMOUNT, format_euro
from src.core.math.offer_decision import DisplayAmounts
from src.integrations.messaging import ChannelNotFoundError, MessagingError

log = logging.getLogger(__name__)

DISCORD_API_URL: Final[str] = "https://discord.com/api/v10"

CHANNEL_TYPE_TEXT: Final[int] = 0
CHANNEL_TYPE_CATEGORY: Final[int] = 4

BUTTON_STYLE_SECONDARY: Final[int] = 2
BUTTON_STYLE_SUCCESS: Final[int] = 3
BUTTON_STYLE_DANGER: Final[int] = 4

COLOR_OFFER: Final[int] = 0xF1C40F
COLOR_CONFIRM: Final[int] = 0x2ECC71

DEAL_UPDATES_CHANNEL: Final[str] = "deal-updates"


def _action_row(*buttons: dict[str, Any]) -> list[dict[str, Any]]:
    return [{"type": 1, "components": list(buttons)}]


class DiscordMessagingGateway:
    """MessagingGateway для Discord"""

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self._client = client
        self._settings = settings
        self._headers = {
            "Authorization": f"Bot {settings.discord_bot_token}",
            "Content-Type": "application/json",
        }

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    async def _request(self, method: str, path: str, json: Optional[dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.request(method, f"{DISCORD_API_URL}{path}", headers=self._headers, json=json)
        except httpx.HTTPError as e:
            raise MessagingError(f"[Discord] {method} {path} failed: {e}") from e
        if not response.is_success:
            raise MessagingError(f"[Discord] {method} {path} → {response.status_code} {response.text}")
        return response.json()

    # -------------------------------------------------------------------------
    # CHANNELS
    # -------------------------------------------------------------------------

    async def _create_channel(self, name: str, channel_type: int, parent_id: Optional[str] = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": name, "type": channel_type}
        if parent_id:
            payload["parent_id"] = parent_id
        channel = await self._request("POST", f"/guilds/{self._settings.discord_guild_id}/channels", json=payload)
        log.info("Created Discord channel %s (type=%s, parent=%s)", name, channel_type, parent_id)
        return channel

    async def resolve_channel(self, seller_key: str, channel_name: str) -> str:
        """
        Id текстового канала channel_name в категории продавца.

        Raises:
            ChannelNotFoundError: категории/канала нет, создание запрещено
        """
        settings = self._settings
        if not settings.discord_guild_id:
            if not settings.discord_channel_id:
                raise ChannelNotFoundError("Set DISCORD_CHANNEL_ID or DISCORD_GUILD_ID")
            return settings.discord_channel_id

        channels = await self._request("GET", f"/guilds/{settings.discord_guild_id}/channels")
        wanted = str(seller_key or "").strip().lower()

        category_id = next(
            (
                c["id"]
                for c in channels
                if c.get("type") == CHANNEL_TYPE_CATEGORY and str(c.get("name", "")).strip().lower() == wanted
            ),
            None,
        )
        if category_id is None:
            if not settings.allow_channel_create:
                raise ChannelNotFoundError(f'Missing category "{seller_key}"')
            category_id = (await self._create_channel(seller_key, CHANNEL_TYPE_CATEGORY))["id"]

        for c in channels:
            if c.get("type") == CHANNEL_TYPE_TEXT and c.get("parent_id") == category_id and c.get("name") == channel_name:
                return c["id"]

        if not settings.allow_channel_create:
            raise ChannelNotFoundError(f'Missing channel "{channel_name}" under "{seller_key}"')
        return (await self._create_channel(channel_name, CHANNEL_TYPE_TEXT, parent_id=category_id))["id"]

    # -------------------------------------------------------------------------
    # MESSAGES
    # -------------------------------------------------------------------------

    @staticmethod
    def _product_description(order: Order, seller: SellerOffer, intro: str) -> str:
        return "\n".join(
            [
                intro,
                "",
                "**Product Name**",
                seller.product_name or order.product_name or MISSING_AMOUNT,
                "",
                f"**SKU**\n{order.sku or MISSING_AMOUNT}",
                f"**Size**\n{order.size or MISSING_AMOUNT}",
                "",
                "**Order**",
                order.display_id,
            ]
        )

    async def _post_message(self, channel_id: str, payload: dict[str, Any]) -> SentMessage:
        message = await self._request("POST", f"/channels/{channel_id}/messages", json=payload)
        return SentMessage(channel_id=str(channel_id), message_id=str(message["id"]))

    def _buttons(
        self, accept_label: str, order: Order, seller: SellerOffer, price: float, vat_label: VatRegime
    ) -> list[dict[str, Any]]:
        def custom_id(action: ApprovalAction) -> str:
            return encode_custom_id(
                action, order.record_id, seller.seller_id, seller.inventory_record_id, price, vat_label.value
            )

        return _action_row(
            {"type": 2, "style": BUTTON_STYLE_SUCCESS, "label": accept_label, "custom_id": custom_id(ApprovalAction.CONFIRM)},
            {"type": 2, "style": BUTTON_STYLE_DANGER, "label": "Deny", "custom_id": custom_id(ApprovalAction.DENY)},
        )

    async def send_offer_message(
        self,
        order: Order,
        seller: SellerOffer,
        display: DisplayAmounts,
        price: float,
        vat_label: VatRegime,
    ) -> SentMessage:
        """Оффер: обе цены, кнопка Accept Offer с нашей ценой"""
        channel_id = await self.resolve_channel(seller.display_name, self._settings.external_channel_name)
        embed = {
            "title": "💸 We Got An Offer For Your Item",
            "description": self._product_description(
                order,
                seller,
                "If you still have this pair, click **Accept Offer** below. "
                "FCFS — other sellers might also have this listed.",
            ),
            "color": COLOR_OFFER,
            "fields": [
                {"name": display.your_label, "value": f"{format_euro(display.your_amount)} {display.vat_tag_your}", "inline": True},
                {"name": display.our_label, "value": f"{format_euro(display.our_amount)} {display.vat_tag_our}", "inline": True},
            ],
            "footer": {"text": f"SellerID: {seller.seller_id}"},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        payload = {
            "content": f"📑 Offer sent for {order.sku or MISSING_AMOUNT} / {order.size or MISSING_AMOUNT}",
            "embeds": [embed],
            "components": self._buttons(f"Accept Offer {format_euro(price)}", order, seller, price, vat_label),
        }
        return await self._post_message(channel_id, payload)

    async def send_confirmation_message(
        self,
        order: Order,
        seller: SellerOffer,
        display: DisplayAmounts,
        price: float,
        vat_label: VatRegime,
    ) -> SentMessage:
        """Запрос подтверждения: одна цена (база продавца)"""
        channel_id = await self.resolve_channel(seller.display_name, self._settings.confirmation_channel_name)
        embed = {
            "title": "✅ Confirm Your Item Is Still Available",
            "description": self._product_description(
                order,
                seller,
                "We can sell this pair at your price. Click **Confirm** if it is still available.",
            ),
            "color": COLOR_CONFIRM,
            "fields": [
                {"name": "Selling Price", "value": f"{format_euro(display.your_amount)} {display.vat_tag_your}", "inline": True},
            ],
            "footer": {"text": f"SellerID: {seller.seller_id}"},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        payload = {
            "content": f"📦 Confirmation request for {order.sku or MISSING_AMOUNT} / {order.size or MISSING_AMOUNT}",
            "embeds": [embed],
            "components": self._buttons(f"Confirm {format_euro(price)}", order, seller, price, vat_label),
        }
        return await self._post_message(channel_id, payload)

    async def disable_message(self, channel_id: str, message_id: str, note: Optional[str] = None) -> None:
        """Замена кнопок на disabled + note в content (идемпотентно)"""
        payload: dict[str, Any] = {
            "components": _action_row(
                {"type": 2, "style": BUTTON_STYLE_SECONDARY, "label": "Confirmed", "custom_id": "confirmed", "disabled": True},
                {"type": 2, "style": BUTTON_STYLE_SECONDARY, "label": "Denied", "custom_id": "denied", "disabled": True},
            )
        }
        if note:
            payload["content"] = note
        await self._request("PATCH", f"/channels/{channel_id}/messages/{message_id}", json=payload)

    async def send_deal_update(
        self,
        seller_id: Optional[str],
        seller_name: str,
        content: str,
        embed: Optional[dict[str, Any]] = None,
    ) -> SentMessage:
        """Уведомление продавцу по сделке (relay из POST /deal-update)"""
        channel_id = await self.resolve_channel(seller_name or seller_id or "", DEAL_UPDATES_CHANNEL)
        payload: dict[str, Any] = {"content": content}
        if embed:
            payload["embeds"] = [embed]
        return await self._post_message(channel_id, payload)
