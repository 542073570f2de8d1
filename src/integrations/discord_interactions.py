"""
Discord Interactions — приём кликов по кнопкам через Interactions Endpoint URL

Discord отправляет каждое interaction POST запросом:
- заголовки X-Signature-Ed25519 / X-Signature-Timestamp; подпись Ed25519
  над timestamp + raw body, ключ — public key приложения
- type 1 (PING) → ответ type 1 (PONG)
- type 3 (MESSAGE_COMPONENT) → ответ type 6 (DEFERRED_UPDATE_MESSAGE) не
  позже 3 секунд; сам клик обрабатывается после ответа

Неверная подпись → 401 (Discord проверяет это при регистрации endpoint).
"""

from typing import Any, Final, Optional

from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from src.core.domain.messages import ApprovalEvent, decode_custom_id

# Interaction types
INTERACTION_PING: Final[int] = 1
INTERACTION_MESSAGE_COMPONENT: Final[int] = 3

# Interaction callback types
RESPONSE_PONG: Final[int] = 1
RESPONSE_DEFERRED_UPDATE_MESSAGE: Final[int] = 6

COMPONENT_BUTTON: Final[int] = 2


class InteractionSignatureVerifier:
    """Проверка подписи Ed25519 входящих interactions"""

    def __init__(self, public_key_hex: str):
        """
        Raises:
            ValueError: public key не является 32-байтным hex
        """
        self._key = VerifyKey(bytes.fromhex(public_key_hex))

    def verify(self, body: bytes, signature_hex: Optional[str], timestamp: Optional[str]) -> bool:
        if not signature_hex or not timestamp:
            return False
        try:
            self._key.verify(timestamp.encode() + body, bytes.fromhex(signature_hex))
        except (BadSignatureError, ValueError):
            return False
        return True


def parse_button_interaction(payload: dict[str, Any]) -> Optional[ApprovalEvent]:
    """
    ApprovalEvent из MESSAGE_COMPONENT interaction.

    Returns:
        None для компонентов, которые не являются кнопками

    Raises:
        ValueError: custom_id или ссылки на сообщение некорректны
    """
    data = payload.get("data") or {}
    if data.get("component_type") != COMPONENT_BUTTON:
        return None

    message = payload.get("message") or {}
    channel_id = payload.get("channel_id") or message.get("channel_id") or ""
    return decode_custom_id(str(data.get("custom_id") or ""), str(channel_id), str(message.get("id") or ""))
