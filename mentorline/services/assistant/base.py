from abc import ABC, abstractmethod


class AssistantService(ABC):
    """External assistant that keeps conversation state in threads."""

    @abstractmethod
    async def create_thread(self) -> str:
        """Create an empty thread and return its id."""

    @abstractmethod
    async def add_user_message(self, thread_id: str, text: str) -> None:
        """Append a user message, waiting out any run active on the thread."""

    @abstractmethod
    async def run_assistant(self, thread_id: str, assistant_id: str) -> str:
        """Run the assistant on the thread and return its reply text."""
