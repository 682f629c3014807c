from mentorline.services.access_guard import AccessGuard
from mentorline.services.conversation_orchestrator import ConversationOrchestrator, ProcessResult
from mentorline.services.session_resolver import SessionContext, SessionResolver
from mentorline.services.session_state_service import SessionStateService
from mentorline.services.webhook_adapters import InboundMessage, WebhookNormalizer, default_normalizer

__all__ = [
    "AccessGuard",
    "ConversationOrchestrator",
    "ProcessResult",
    "SessionContext",
    "SessionResolver",
    "SessionStateService",
    "InboundMessage",
    "WebhookNormalizer",
    "default_normalizer",
]
