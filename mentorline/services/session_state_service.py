import asyncio
from datetime import datetime, timezone

from mentorline.models import ConversationSession, SessionAccessWindow
from mentorline.repositories.base import AccessWindowRepository, SessionRepository

MESSAGES_PER_EXCHANGE = 2  # user + assistant
EXPECTED_MESSAGES_PER_DAY = 10


def calculate_progress(total_messages: int, duration_days: int) -> int:
    """Saturating estimate of program progress from message volume."""
    if duration_days <= 0:
        return 0
    return min(100, (total_messages * 100) // (duration_days * EXPECTED_MESSAGES_PER_DAY))


class SessionStateService:
    def __init__(self, sessions: SessionRepository, access_windows: AccessWindowRepository):
        self.sessions = sessions
        self.access_windows = access_windows

    async def update_after_message(
        self,
        session: ConversationSession,
        window: SessionAccessWindow,
        duration_days: int,
    ) -> None:
        session.last_interaction_at = datetime.now(timezone.utc)
        session.total_messages = (session.total_messages or 0) + MESSAGES_PER_EXCHANGE
        progress = calculate_progress(session.total_messages, duration_days)
        # progress never goes backwards
        window.progress_percentage = max(window.progress_percentage or 0, progress)

        await asyncio.gather(
            self.sessions.update(session),
            self.access_windows.update(window),
        )

    async def update_for_welcome_message(self, session: ConversationSession) -> None:
        session.last_interaction_at = datetime.now(timezone.utc)
        session.total_messages = MESSAGES_PER_EXCHANGE
        await self.sessions.update(session)
