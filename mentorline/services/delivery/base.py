from abc import ABC, abstractmethod
from typing import Dict

from mentorline.models import Program
from mentorline.services.errors import UnsupportedProviderError
from mentorline.services.providers import WhatsAppProvider


class WhatsAppSender(ABC):
    provider: WhatsAppProvider

    @abstractmethod
    async def send_message(self, phone_number: str, text: str, program: Program) -> bool:
        """Deliver text to the phone through the program's instance. False on delivery failure."""

    async def aclose(self) -> None:
        pass


SenderTable = Dict[WhatsAppProvider, WhatsAppSender]


def get_sender(table: SenderTable, program: Program) -> WhatsAppSender:
    try:
        provider = WhatsAppProvider(program.whatsapp_provider)
    except ValueError:
        raise UnsupportedProviderError(f"Provider {program.whatsapp_provider} is not supported")
    sender = table.get(provider)
    if sender is None:
        raise UnsupportedProviderError(f"Provider {provider.value} is not configured")
    return sender
