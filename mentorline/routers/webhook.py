"""Inbound WhatsApp webhooks, one endpoint per gateway."""

from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse

from mentorline.dependencies import get_normalizer, get_orchestrator, get_senders
from mentorline.logging_config import get_logger
from mentorline.schemas.webhook import WebhookResponse
from mentorline.services.conversation_orchestrator import ConversationOrchestrator
from mentorline.services.delivery.base import SenderTable, get_sender
from mentorline.services.errors import DeliveryConfigurationError, UnsupportedProviderError
from mentorline.services.providers import WhatsAppProvider
from mentorline.services.webhook_adapters import WebhookNormalizer

logger = get_logger("webhook")

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/evolution", response_model=WebhookResponse)
async def evolution_webhook(
    payload: dict = Body(...),
    program_id: UUID = Query(...),
    normalizer: WebhookNormalizer = Depends(get_normalizer),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    senders: SenderTable = Depends(get_senders),
):
    return await _handle_inbound(WhatsAppProvider.EVOLUTION, payload, program_id, normalizer, orchestrator, senders)


@router.post("/zapi", response_model=WebhookResponse)
async def zapi_webhook(
    payload: dict = Body(...),
    program_id: UUID = Query(...),
    normalizer: WebhookNormalizer = Depends(get_normalizer),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    senders: SenderTable = Depends(get_senders),
):
    return await _handle_inbound(WhatsAppProvider.ZAPI, payload, program_id, normalizer, orchestrator, senders)


async def _handle_inbound(
    provider: WhatsAppProvider,
    payload: dict,
    program_id: UUID,
    normalizer: WebhookNormalizer,
    orchestrator: ConversationOrchestrator,
    senders: SenderTable,
):
    adapter = normalizer.get_adapter(payload)
    if adapter is None or adapter.provider != provider:
        logger.warning(
            "Invalid webhook format",
            extra={"context": {"endpoint": provider.value, "matched": adapter.provider.value if adapter else None}},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=WebhookResponse(success=False, message="Invalid webhook format").model_dump(),
        )

    inbound = adapter.adapt(payload)
    if inbound is None:
        logger.debug(f"Ignored {provider.value} webhook")
        return WebhookResponse(success=True, message="Message ignored")

    logger.info(
        "Inbound message",
        extra={"context": {"provider": provider.value, "phone": inbound.phone_number, "program_id": str(program_id)}},
    )

    result = await orchestrator.process_message(inbound.phone_number, inbound.text, program_id)

    try:
        sender = get_sender(senders, result.program)
        sent = await sender.send_message(inbound.phone_number, result.reply, result.program)
    except (UnsupportedProviderError, DeliveryConfigurationError) as e:
        logger.error(f"Cannot deliver reply for program {program_id}: {e}")
        sent = False

    if not sent:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=WebhookResponse(success=False, message="Failed to send message").model_dump(),
        )

    return WebhookResponse(success=True, message="Message processed successfully")
