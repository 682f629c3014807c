from mentorline.services.assistant.base import AssistantService
from mentorline.services.assistant.openai_assistant import OpenAIAssistantService

__all__ = ["AssistantService", "OpenAIAssistantService"]
