from typing import Optional

import httpx

from mentorline.logging_config import get_logger
from mentorline.models import Program
from mentorline.services.alert_service import alert_warning
from mentorline.services.delivery.base import WhatsAppSender
from mentorline.services.errors import DeliveryConfigurationError
from mentorline.services.http_retry import RetryPolicy
from mentorline.services.providers import WhatsAppProvider

logger = get_logger("delivery.evolution")

TYPING_DELAY_MS = 1200


class EvolutionSender(WhatsAppSender):
    """Evolution API: POST {base}/message/sendText/{instance} with a global apikey."""

    provider = WhatsAppProvider.EVOLUTION

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.retry_policy = retry_policy or RetryPolicy("evolution", base_delay_seconds=1.0)
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send_message(self, phone_number: str, text: str, program: Program) -> bool:
        instance = program.instance_code
        if not instance:
            logger.error(f"Instance code not configured for program {program.id}")
            raise DeliveryConfigurationError(f"Instance code not configured for program {program.id}")

        payload = {
            "number": phone_number,
            "options": {"delay": TYPING_DELAY_MS, "presence": "composing"},
            "textMessage": {"text": text},
        }
        try:
            response = await self.retry_policy.request(
                self._client,
                "POST",
                f"{self.base_url}/message/sendText/{instance}",
                json=payload,
                headers={"apikey": self.api_key},
            )
        except httpx.HTTPError as e:
            logger.error(f"Error sending message to {phone_number} via instance {instance}: {e}")
            await alert_warning("WhatsApp send failed", {"provider": self.provider.value, "error": str(e)})
            return False

        if response.is_success:
            logger.info(f"Message sent to {phone_number} via instance {instance}")
            return True

        logger.error(
            f"Failed to send message to {phone_number} via instance {instance}: "
            f"status={response.status_code}, body={response.text[:200]}"
        )
        await alert_warning(
            "WhatsApp send failed",
            {"provider": self.provider.value, "instance": instance, "status": response.status_code},
        )
        return False
