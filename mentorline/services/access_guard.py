from datetime import datetime, timezone
from typing import Optional

from mentorline.logging_config import get_logger
from mentorline.models import ConversationSession, SessionAccessWindow
from mentorline.repositories.base import SessionRepository
from mentorline.services.result import Result
from mentorline.services.session_status import SessionStatus

logger = get_logger("access_guard")

ACCESS_EXPIRED_CODE = "access_expired"
ACCESS_EXPIRED_MESSAGE = "Your access period to this mentorship has ended. Please contact us to renew."


def is_access_expired(window: SessionAccessWindow, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return now > window.access_end_at


class AccessGuard:
    def __init__(self, sessions: SessionRepository):
        self.sessions = sessions

    async def validate_access(self, session: ConversationSession, window: SessionAccessWindow) -> Result[None]:
        """Check the access window; an expired window flips the session to expired."""
        if not is_access_expired(window):
            return Result.success()

        if session.status != SessionStatus.EXPIRED.value:
            session.status = SessionStatus.EXPIRED.value
            await self.sessions.update(session)
            logger.warning(
                "Access expired",
                extra={"context": {"session_id": str(session.id), "access_end_at": window.access_end_at}},
            )

        return Result.failure(ACCESS_EXPIRED_MESSAGE, code=ACCESS_EXPIRED_CODE)
