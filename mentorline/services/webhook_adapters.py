"""Provider webhook adapters.

Each WhatsApp gateway posts its own payload shape. Adapters turn a payload into
an ``InboundMessage`` or return ``None`` when the event must be ignored
(not a new message, sent by our own number, no text, no usable phone).
The normalizer tries adapters in registration order and uses the first one
whose ``can_handle`` accepts the payload.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from mentorline.logging_config import get_logger
from mentorline.schemas.webhook import EvolutionWebhookPayload, ZApiWebhookPayload
from mentorline.services.providers import WhatsAppProvider

logger = get_logger("webhook_adapters")

EVOLUTION_MESSAGE_EVENT = "messages.upsert"
ZAPI_TEXT_TYPES = {"ReceivedCallback", "text"}


@dataclass
class InboundMessage:
    phone_number: str
    text: str
    provider: WhatsAppProvider
    from_me: bool = False
    message_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    contact_name: Optional[str] = None
    is_group: bool = False


def extract_phone_number(sender: Optional[str]) -> str:
    """Reduce a JID or raw phone to digits.

    "5511999999999:5511999999999@s.whatsapp.net" -> "5511999999999"
    """
    if not sender or not sender.strip():
        return ""
    phone_part = sender.split("@", 1)[0]
    if ":" in phone_part:
        phone_part = phone_part.split(":", 1)[0]
    return "".join(ch for ch in phone_part if ch.isdigit())


class WebhookAdapter(ABC):
    provider: WhatsAppProvider

    @abstractmethod
    def can_handle(self, payload: Any) -> bool:
        """Whether the payload has this provider's shape."""

    @abstractmethod
    def adapt(self, payload: Any) -> Optional[InboundMessage]:
        """Convert payload; None means the webhook should be ignored."""


class EvolutionWebhookAdapter(WebhookAdapter):
    provider = WhatsAppProvider.EVOLUTION

    def can_handle(self, payload: Any) -> bool:
        if isinstance(payload, EvolutionWebhookPayload):
            return True
        return isinstance(payload, dict) and "event" in payload and "data" in payload

    def adapt(self, payload: Any) -> Optional[InboundMessage]:
        dto = _coerce(payload, EvolutionWebhookPayload)
        if dto is None:
            return None

        if dto.event != EVOLUTION_MESSAGE_EVENT or dto.data is None or dto.data.key is None:
            return None

        key = dto.data.key
        if key.fromMe:
            return None

        text = _evolution_text(dto)
        if not text:
            return None

        phone_number = extract_phone_number(key.remoteJid)
        if not phone_number:
            return None

        timestamp = datetime.now(timezone.utc)
        if dto.data.messageTimestamp:
            timestamp = datetime.fromtimestamp(dto.data.messageTimestamp, tz=timezone.utc)

        return InboundMessage(
            phone_number=phone_number,
            text=text,
            provider=self.provider,
            from_me=key.fromMe,
            message_id=key.id,
            timestamp=timestamp,
            contact_name=dto.data.pushName,
            is_group=key.remoteJid.endswith("@g.us"),
        )


class ZApiWebhookAdapter(WebhookAdapter):
    provider = WhatsAppProvider.ZAPI

    def can_handle(self, payload: Any) -> bool:
        if isinstance(payload, ZApiWebhookPayload):
            return True
        return isinstance(payload, dict) and "phone" in payload and "type" in payload

    def adapt(self, payload: Any) -> Optional[InboundMessage]:
        dto = _coerce(payload, ZApiWebhookPayload)
        if dto is None:
            return None

        if dto.fromMe or not dto.phone:
            return None

        if dto.type not in ZAPI_TEXT_TYPES or dto.text is None or not dto.text.message:
            return None

        phone_number = extract_phone_number(dto.phone)
        if not phone_number:
            return None

        timestamp = datetime.now(timezone.utc)
        if dto.momment:
            timestamp = datetime.fromtimestamp(dto.momment / 1000, tz=timezone.utc)

        return InboundMessage(
            phone_number=phone_number,
            text=dto.text.message,
            provider=self.provider,
            from_me=dto.fromMe,
            message_id=dto.messageId,
            timestamp=timestamp,
            contact_name=dto.senderName,
            is_group=dto.isGroup,
        )


class WebhookNormalizer:
    """Registry of adapters evaluated in registration order."""

    def __init__(self, adapters: Iterable[WebhookAdapter]):
        self.adapters = list(adapters)

    def get_adapter(self, payload: Any) -> Optional[WebhookAdapter]:
        for adapter in self.adapters:
            if adapter.can_handle(payload):
                return adapter
        return None

    def adapt(self, payload: Any) -> Optional[InboundMessage]:
        adapter = self.get_adapter(payload)
        if adapter is None:
            logger.warning("No webhook adapter matched payload")
            return None
        return adapter.adapt(payload)


def default_normalizer() -> WebhookNormalizer:
    return WebhookNormalizer([EvolutionWebhookAdapter(), ZApiWebhookAdapter()])


def _evolution_text(dto: EvolutionWebhookPayload) -> str:
    message = dto.data.message if dto.data else None
    if message is None:
        return ""
    if message.conversation:
        return message.conversation
    if message.extendedTextMessage and message.extendedTextMessage.text:
        return message.extendedTextMessage.text
    return ""


def _coerce(payload: Any, model):
    if isinstance(payload, model):
        return payload
    if not isinstance(payload, dict):
        return None
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Invalid {model.__name__}: {e.error_count()} validation errors")
        return None
