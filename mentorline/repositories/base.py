"""Persistence interfaces used by the conversation services."""

from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from mentorline.models import ConversationSession, Program, SessionAccessWindow, TranscriptEntry, User


class UserRepository(ABC):
    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        pass

    @abstractmethod
    async def get_by_phone(self, phone_number: str) -> Optional[User]:
        pass

    @abstractmethod
    async def create(self, user: User) -> User:
        pass

    @abstractmethod
    async def update(self, user: User) -> User:
        pass


class ProgramRepository(ABC):
    @abstractmethod
    async def get_by_id(self, program_id: UUID) -> Optional[Program]:
        pass


class SessionRepository(ABC):
    @abstractmethod
    async def get_by_id(self, session_id: UUID) -> Optional[ConversationSession]:
        pass

    @abstractmethod
    async def get_active(self, user_id: UUID, program_id: UUID) -> Optional[ConversationSession]:
        """Active session for the pair, if any."""

    @abstractmethod
    async def get_latest(self, user_id: UUID, program_id: UUID) -> Optional[ConversationSession]:
        """Most recently created session for the pair regardless of status."""

    @abstractmethod
    async def list_by_user(self, user_id: UUID) -> List[ConversationSession]:
        pass

    @abstractmethod
    async def create(self, session: ConversationSession) -> ConversationSession:
        """Insert a session. Raises SessionConflictError when another active one exists."""

    @abstractmethod
    async def update(self, session: ConversationSession) -> ConversationSession:
        pass

    @abstractmethod
    async def commit(self) -> None:
        """Make staged changes durable before the request's own commit."""


class AccessWindowRepository(ABC):
    @abstractmethod
    async def get(self, session_id: UUID) -> Optional[SessionAccessWindow]:
        pass

    @abstractmethod
    async def create(self, window: SessionAccessWindow) -> SessionAccessWindow:
        pass

    @abstractmethod
    async def update(self, window: SessionAccessWindow) -> SessionAccessWindow:
        pass


class TranscriptRepository(ABC):
    @abstractmethod
    async def append(self, session_id: UUID, role: str, content: str) -> TranscriptEntry:
        pass

    @abstractmethod
    async def history(self, session_id: UUID, limit: int = 20) -> List[TranscriptEntry]:
        """Latest entries in chronological order."""

    @abstractmethod
    async def has_assistant_entry(self, session_id: UUID) -> bool:
        pass
