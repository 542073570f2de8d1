"""
Messages — модели сообщений продавцам и событий подтверждения

OfferMessage: запись об одном отправленном сообщении (immutable, живёт всё
время переговоров, используется только для отключения кнопок).

ApprovalEvent: клик продавца по кнопке Accept/Deny. Все параметры события
закодированы в custom_id кнопки:

    action|order_record_id|seller_id|inventory_record_id|price|vat_label
"""

from enum import Enum
from typing import Final, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.core.math.numerical_safeguards import round_money, to_number

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

CUSTOM_ID_SEPARATOR: Final[str] = "|"

# Discord ограничивает custom_id 100 символами
CUSTOM_ID_MAX_LENGTH: Final[int] = 100


# =============================================================================
# ENUMS
# =============================================================================


class ApprovalAction(str, Enum):
    """Действие продавца"""

    CONFIRM = "confirm_ext"
    DENY = "deny_ext"


# =============================================================================
# MODELS
# =============================================================================


class SentMessage(BaseModel):
    """Ссылка на отправленное сообщение в мессенджере"""

    channel_id: str = Field(..., min_length=1)
    message_id: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)


class OfferMessage(BaseModel):
    """
    Лог одного сообщения продавцу.

    Создаётся при отправке, читается для поиска и отключения соседних
    сообщений заказа, никогда не изменяется.
    """

    order_record_id: str = Field(..., min_length=1, description="Record id заказа")
    seller_id: Optional[str] = Field(None, description="Id продавца")
    inventory_record_id: Optional[str] = Field(None, description="Inventory запись")
    channel_id: str = Field(..., min_length=1, description="Канал мессенджера")
    message_id: str = Field(..., min_length=1, description="Id сообщения")
    price: Optional[float] = Field(None, description="Цена в сообщении (2 знака)")

    model_config = ConfigDict(frozen=True)

    @property
    def ref(self) -> tuple[str, str]:
        """Ключ дедупликации (channel, message)"""
        return (self.channel_id, self.message_id)


class ApprovalEvent(BaseModel):
    """
    Клик продавца по кнопке сообщения.

    Доставка at-least-once: повторы допустимы, идемпотентность обеспечивает
    ApprovalStateMachine.
    """

    action: str = Field(..., description="confirm_ext / deny_ext (иное игнорируется)")
    order_record_id: str = Field(..., min_length=1)
    seller_id: str = Field("", description="Id продавца из кнопки")
    inventory_record_id: str = Field("", description="Inventory запись из кнопки")
    price: Optional[float] = Field(None, description="Цена с кнопки")
    vat_label: Optional[str] = Field(None, description="Подтверждённый VAT-тип (Margin / VAT0 / VAT21)")
    channel_id: str = Field(..., min_length=1)
    message_id: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)

    @property
    def is_confirm(self) -> bool:
        return self.action == ApprovalAction.CONFIRM.value

    @property
    def is_deny(self) -> bool:
        return self.action == ApprovalAction.DENY.value


# =============================================================================
# CUSTOM_ID CODEC
# =============================================================================


def encode_custom_id(
    action: ApprovalAction,
    order_record_id: str,
    seller_id: str,
    inventory_record_id: Optional[str],
    price: Optional[float],
    vat_label: Optional[str],
) -> str:
    """
    Кодирование параметров события в custom_id кнопки.

    Raises:
        ValueError: если результат длиннее CUSTOM_ID_MAX_LENGTH
    """
    price_part = f"{round_money(price):.2f}" if price is not None else "0"
    parts = [
        action.value,
        order_record_id,
        seller_id,
        inventory_record_id or "",
        price_part,
        vat_label or "",
    ]
    custom_id = CUSTOM_ID_SEPARATOR.join(parts)
    if len(custom_id) > CUSTOM_ID_MAX_LENGTH:
        raise ValueError(f"custom_id too long ({len(custom_id)} > {CUSTOM_ID_MAX_LENGTH}): {custom_id}")
    return custom_id


def decode_custom_id(custom_id: str, channel_id: str, message_id: str) -> ApprovalEvent:
    """
    Разбор custom_id кнопки в ApprovalEvent.

    Отсутствующие хвостовые части допускаются (старые сообщения без vat_label).

    Raises:
        ValueError: если custom_id не содержит action и order_record_id
    """
    parts = str(custom_id).split(CUSTOM_ID_SEPARATOR)
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise ValueError(f"Malformed custom_id: {custom_id!r}")
    parts += [""] * (6 - len(parts))
    action, order_record_id, seller_id, inventory_record_id, price_raw, vat_label = parts[:6]

    return ApprovalEvent(
        action=action,
        order_record_id=order_record_id,
        seller_id=seller_id,
        inventory_record_id=inventory_record_id,
        price=to_number(price_raw),
        vat_label=vat_label or None,
        channel_id=channel_id,
        message_id=message_id,
    )
