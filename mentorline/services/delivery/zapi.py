from typing import Optional

import httpx

from mentorline.logging_config import get_logger
from mentorline.models import Program
from mentorline.services.alert_service import alert_warning
from mentorline.services.delivery.base import WhatsAppSender
from mentorline.services.errors import DeliveryConfigurationError
from mentorline.services.http_retry import RetryPolicy
from mentorline.services.providers import WhatsAppProvider

logger = get_logger("delivery.zapi")


class ZApiSender(WhatsAppSender):
    """Z-API: per-instance token in the path, account-wide Client-Token header."""

    provider = WhatsAppProvider.ZAPI

    def __init__(
        self,
        base_url: str,
        client_token: str,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client_token = client_token
        self.retry_policy = retry_policy or RetryPolicy("zapi", base_delay_seconds=1.0)
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send_message(self, phone_number: str, text: str, program: Program) -> bool:
        if not program.instance_code:
            raise DeliveryConfigurationError(f"Instance code not configured for program {program.id}")
        if not program.instance_token:
            raise DeliveryConfigurationError(f"Instance token not configured for program {program.id}")

        url = f"{self.base_url}/instances/{program.instance_code}/token/{program.instance_token}/send-text"
        try:
            response = await self.retry_policy.request(
                self._client,
                "POST",
                url,
                json={"phone": phone_number, "message": text},
                headers={"Client-Token": self.client_token},
            )
        except httpx.HTTPError as e:
            logger.error(f"Error sending message to {phone_number} via Z-API: {e}")
            await alert_warning("WhatsApp send failed", {"provider": self.provider.value, "error": str(e)})
            return False

        if response.is_success:
            logger.info(f"Message sent to {phone_number} via Z-API instance {program.instance_code}")
            return True

        logger.error(
            f"Z-API rejected message to {phone_number}: status={response.status_code}, body={response.text[:200]}"
        )
        await alert_warning(
            "WhatsApp send failed",
            {"provider": self.provider.value, "instance": program.instance_code, "status": response.status_code},
        )
        return False
