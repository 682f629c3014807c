from typing import Optional

from pydantic import BaseModel, ConfigDict


class EvolutionMessageKey(BaseModel):
    remoteJid: str = ""
    fromMe: bool = False
    id: Optional[str] = None


class EvolutionExtendedText(BaseModel):
    text: Optional[str] = None


class EvolutionMessageContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    conversation: Optional[str] = None
    extendedTextMessage: Optional[EvolutionExtendedText] = None


class EvolutionWebhookData(BaseModel):
    model_config = ConfigDict(extra="allow")

    key: Optional[EvolutionMessageKey] = None
    message: Optional[EvolutionMessageContent] = None
    pushName: Optional[str] = None
    messageTimestamp: Optional[int] = None


class EvolutionWebhookPayload(BaseModel):
    """Evolution API `messages.upsert` style webhook body."""

    model_config = ConfigDict(extra="allow")

    event: str = ""
    instance: Optional[str] = None
    data: Optional[EvolutionWebhookData] = None


class ZApiTextMessage(BaseModel):
    message: Optional[str] = None


class ZApiWebhookPayload(BaseModel):
    """Z-API `on-message-received` webhook body."""

    model_config = ConfigDict(extra="allow")

    instanceId: Optional[str] = None
    messageId: Optional[str] = None
    phone: Optional[str] = None
    fromMe: bool = False
    momment: Optional[int] = None
    status: Optional[str] = None
    chatName: Optional[str] = None
    senderName: Optional[str] = None
    isGroup: bool = False
    waitingMessage: bool = False
    broadcast: bool = False
    type: Optional[str] = None
    text: Optional[ZApiTextMessage] = None


class WebhookResponse(BaseModel):
    success: bool
    message: str
