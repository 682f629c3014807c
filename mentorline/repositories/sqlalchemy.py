"""SQLAlchemy implementations of the repository interfaces.

Inserts that need generated keys or constraint checks flush immediately.
Updates and transcript appends only stage changes on the AsyncSession; the
request unit of work flushes them, so callers may gather several of them
without issuing concurrent statements on one connection. The session
repository can also commit early for writes that must outlive a failed request.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mentorline.logging_config import get_logger
from mentorline.models import ConversationSession, Program, SessionAccessWindow, TranscriptEntry, User
from mentorline.repositories.base import (
    AccessWindowRepository,
    ProgramRepository,
    SessionRepository,
    TranscriptRepository,
    UserRepository,
)
from mentorline.services.errors import SessionConflictError
from mentorline.services.session_status import SessionStatus

logger = get_logger("repositories")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SqlUserRepository(UserRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_by_phone(self, phone_number: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.phone_number == phone_number))
        return result.scalars().first()

    async def create(self, user: User) -> User:
        self.db.add(user)
        await self.db.flush()
        return user

    async def update(self, user: User) -> User:
        user.updated_at = _now()
        return user


class SqlProgramRepository(ProgramRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, program_id: UUID) -> Optional[Program]:
        return await self.db.get(Program, program_id)


class SqlSessionRepository(SessionRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, session_id: UUID) -> Optional[ConversationSession]:
        return await self.db.get(ConversationSession, session_id)

    async def get_active(self, user_id: UUID, program_id: UUID) -> Optional[ConversationSession]:
        result = await self.db.execute(
            select(ConversationSession).where(
                ConversationSession.user_id == user_id,
                ConversationSession.program_id == program_id,
                ConversationSession.status == SessionStatus.ACTIVE.value,
            )
        )
        return result.scalars().first()

    async def get_latest(self, user_id: UUID, program_id: UUID) -> Optional[ConversationSession]:
        result = await self.db.execute(
            select(ConversationSession)
            .where(
                ConversationSession.user_id == user_id,
                ConversationSession.program_id == program_id,
            )
            .order_by(ConversationSession.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def list_by_user(self, user_id: UUID) -> List[ConversationSession]:
        result = await self.db.execute(
            select(ConversationSession)
            .where(ConversationSession.user_id == user_id)
            .order_by(ConversationSession.created_at.desc())
        )
        return list(result.scalars().all())

    async def create(self, session: ConversationSession) -> ConversationSession:
        try:
            # savepoint so a unique violation leaves the request transaction usable
            async with self.db.begin_nested():
                self.db.add(session)
                await self.db.flush()
        except IntegrityError as e:
            logger.warning(
                "Active session insert rejected by unique index",
                extra={"context": {"user_id": str(session.user_id), "program_id": str(session.program_id)}},
            )
            raise SessionConflictError(str(e.orig)) from e
        return session

    async def update(self, session: ConversationSession) -> ConversationSession:
        session.updated_at = _now()
        return session

    async def commit(self) -> None:
        await self.db.commit()


class SqlAccessWindowRepository(AccessWindowRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, session_id: UUID) -> Optional[SessionAccessWindow]:
        return await self.db.get(SessionAccessWindow, session_id)

    async def create(self, window: SessionAccessWindow) -> SessionAccessWindow:
        self.db.add(window)
        await self.db.flush()
        return window

    async def update(self, window: SessionAccessWindow) -> SessionAccessWindow:
        window.updated_at = _now()
        return window


class SqlTranscriptRepository(TranscriptRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(self, session_id: UUID, role: str, content: str) -> TranscriptEntry:
        entry = TranscriptEntry(
            session_id=session_id,
            role=role,
            content=content,
            message_type="text",
            created_at=_now(),
        )
        self.db.add(entry)
        return entry

    async def history(self, session_id: UUID, limit: int = 20) -> List[TranscriptEntry]:
        result = await self.db.execute(
            select(TranscriptEntry)
            .where(TranscriptEntry.session_id == session_id)
            .order_by(TranscriptEntry.created_at.desc())
            .limit(limit)
        )
        return list(reversed(result.scalars().all()))

    async def has_assistant_entry(self, session_id: UUID) -> bool:
        result = await self.db.execute(
            select(
                exists().where(
                    TranscriptEntry.session_id == session_id,
                    TranscriptEntry.role == "assistant",
                )
            )
        )
        return bool(result.scalar())
