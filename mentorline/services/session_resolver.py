from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from mentorline.logging_config import get_logger
from mentorline.models import ConversationSession, SessionAccessWindow
from mentorline.repositories.base import AccessWindowRepository, SessionRepository
from mentorline.services.access_guard import is_access_expired
from mentorline.services.assistant.base import AssistantService
from mentorline.services.errors import AccessExpiredError, SessionAlreadyActiveError, SessionConflictError
from mentorline.services.providers import AIProvider
from mentorline.services.session_status import SessionStatus

logger = get_logger("session_resolver")


@dataclass
class SessionContext:
    session: ConversationSession
    access_window: SessionAccessWindow


class SessionResolver:
    """Find or create the conversation session for a (user, program) pair."""

    def __init__(
        self,
        sessions: SessionRepository,
        access_windows: AccessWindowRepository,
        assistant: AssistantService,
    ):
        self.sessions = sessions
        self.access_windows = access_windows
        self.assistant = assistant

    async def get_or_create_session_context(
        self, user_id: UUID, program_id: UUID, duration_days: int
    ) -> SessionContext:
        """Return the usable session for the pair.

        An active session is returned as is. Otherwise the most recent session
        is reactivated if its access window is still open, keeping the original
        window (``duration_days`` is not applied again). An inactive session
        whose window has closed is marked expired and AccessExpiredError is
        raised. With no prior session a new one is created.
        """
        active = await self.sessions.get_active(user_id, program_id)
        if active is not None:
            return await self._context_for(active, duration_days)

        latest = await self.sessions.get_latest(user_id, program_id)
        if latest is not None:
            window = await self.access_windows.get(latest.id)
            if window is not None:
                return await self._reactivate(latest, window)

        return await self._create_or_adopt(user_id, program_id, duration_days)

    async def create_session(
        self,
        user_id: UUID,
        program_id: UUID,
        duration_days: int,
        thread_id: Optional[str] = None,
    ) -> SessionContext:
        """Explicit creation; refuses when an active session already exists."""
        existing = await self.sessions.get_active(user_id, program_id)
        if existing is not None:
            logger.warning(
                "Active session already exists",
                extra={"context": {"user_id": str(user_id), "program_id": str(program_id), "session_id": str(existing.id)}},
            )
            raise SessionAlreadyActiveError(user_id, program_id, existing.id)

        try:
            return await self._create(user_id, program_id, duration_days, thread_id=thread_id)
        except SessionConflictError:
            active = await self.sessions.get_active(user_id, program_id)
            raise SessionAlreadyActiveError(user_id, program_id, active.id if active else None)

    async def ensure_thread_exists(self, session: ConversationSession) -> str:
        if session.thread_id:
            return session.thread_id

        thread_id = await self.assistant.create_thread()
        session.thread_id = thread_id
        await self.sessions.update(session)
        # the upstream thread now exists; its id must survive a failed run
        await self.sessions.commit()
        logger.info(f"Created assistant thread {thread_id} for session {session.id}")
        return thread_id

    async def _reactivate(self, session: ConversationSession, window: SessionAccessWindow) -> SessionContext:
        if is_access_expired(window):
            if session.status != SessionStatus.EXPIRED.value:
                session.status = SessionStatus.EXPIRED.value
                await self.sessions.update(session)
            logger.warning(f"Access expired for session {session.id}")
            raise AccessExpiredError(session.id)

        # TODO: decide whether reactivation should extend access_end_at for the program's current duration
        previous = session.status
        session.status = SessionStatus.ACTIVE.value
        await self.sessions.update(session)
        logger.info(f"Reactivated session {session.id} (was {previous})")
        return SessionContext(session=session, access_window=window)

    async def _create_or_adopt(self, user_id: UUID, program_id: UUID, duration_days: int) -> SessionContext:
        try:
            return await self._create(user_id, program_id, duration_days)
        except SessionConflictError:
            # a concurrent request created the active session first
            active = await self.sessions.get_active(user_id, program_id)
            if active is None:
                raise
            logger.info(f"Adopted concurrently created session {active.id}")
            return await self._context_for(active, duration_days)

    async def _create(
        self,
        user_id: UUID,
        program_id: UUID,
        duration_days: int,
        thread_id: Optional[str] = None,
    ) -> SessionContext:
        session = await self.sessions.create(
            ConversationSession(
                user_id=user_id,
                program_id=program_id,
                ai_provider=AIProvider.OPENAI.value,
                thread_id=thread_id,
                status=SessionStatus.ACTIVE.value,
                total_messages=0,
            )
        )
        window = await self._create_window(session, duration_days)
        logger.info(
            "Created new session",
            extra={"context": {"session_id": str(session.id), "user_id": str(user_id), "program_id": str(program_id)}},
        )
        return SessionContext(session=session, access_window=window)

    async def _create_window(self, session: ConversationSession, duration_days: int) -> SessionAccessWindow:
        now = datetime.now(timezone.utc)
        return await self.access_windows.create(
            SessionAccessWindow(
                session_id=session.id,
                access_start_at=now,
                access_end_at=now + timedelta(days=duration_days),
                progress_percentage=0,
                report_generated=False,
            )
        )

    async def _context_for(self, session: ConversationSession, duration_days: int) -> SessionContext:
        window = await self.access_windows.get(session.id)
        if window is None:
            # session insert succeeded but the window insert did not
            logger.warning(f"Session {session.id} has no access window, creating it")
            window = await self._create_window(session, duration_days)
        return SessionContext(session=session, access_window=window)
