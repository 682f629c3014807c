from mentorline.config import Settings
from mentorline.services.delivery.base import SenderTable, WhatsAppSender, get_sender
from mentorline.services.delivery.evolution import EvolutionSender
from mentorline.services.delivery.zapi import ZApiSender
from mentorline.services.http_retry import RetryPolicy
from mentorline.services.providers import WhatsAppProvider


def build_sender_table(settings: Settings) -> SenderTable:
    """Build one sender per provider. Called once at startup."""
    return {
        WhatsAppProvider.EVOLUTION: EvolutionSender(
            settings.evolution_base_url,
            settings.evolution_api_key,
            retry_policy=RetryPolicy(
                "evolution",
                max_retries=settings.http_retry_attempts,
                base_delay_seconds=settings.http_retry_base_delay_seconds,
            ),
        ),
        WhatsAppProvider.ZAPI: ZApiSender(
            settings.zapi_base_url,
            settings.zapi_client_token,
            retry_policy=RetryPolicy(
                "zapi",
                max_retries=settings.http_retry_attempts,
                base_delay_seconds=settings.http_retry_base_delay_seconds,
            ),
        ),
    }


__all__ = [
    "SenderTable",
    "WhatsAppSender",
    "EvolutionSender",
    "ZApiSender",
    "build_sender_table",
    "get_sender",
]
