from enum import Enum


class WhatsAppProvider(str, Enum):
    EVOLUTION = "evolution"
    ZAPI = "zapi"


class AIProvider(str, Enum):
    OPENAI = "openai"
