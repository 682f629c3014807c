"""Request-scoped wiring of repositories and services.

The assistant client and the sender table are created once per process in the
application lifespan and kept on ``app.state``.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mentorline.database import get_db
from mentorline.repositories import (
    SqlAccessWindowRepository,
    SqlProgramRepository,
    SqlSessionRepository,
    SqlTranscriptRepository,
    SqlUserRepository,
)
from mentorline.services.access_guard import AccessGuard
from mentorline.services.assistant.base import AssistantService
from mentorline.services.conversation_orchestrator import ConversationOrchestrator
from mentorline.services.delivery.base import SenderTable
from mentorline.services.session_resolver import SessionResolver
from mentorline.services.session_state_service import SessionStateService
from mentorline.services.webhook_adapters import WebhookNormalizer


def get_assistant(request: Request) -> AssistantService:
    return request.app.state.assistant


def get_senders(request: Request) -> SenderTable:
    return request.app.state.senders


def get_normalizer(request: Request) -> WebhookNormalizer:
    return request.app.state.normalizer


def get_session_repository(db: AsyncSession = Depends(get_db)) -> SqlSessionRepository:
    return SqlSessionRepository(db)


def get_orchestrator(
    db: AsyncSession = Depends(get_db),
    assistant: AssistantService = Depends(get_assistant),
    senders: SenderTable = Depends(get_senders),
) -> ConversationOrchestrator:
    sessions = SqlSessionRepository(db)
    access_windows = SqlAccessWindowRepository(db)
    return ConversationOrchestrator(
        users=SqlUserRepository(db),
        programs=SqlProgramRepository(db),
        transcripts=SqlTranscriptRepository(db),
        resolver=SessionResolver(sessions, access_windows, assistant),
        guard=AccessGuard(sessions),
        assistant=assistant,
        state_service=SessionStateService(sessions, access_windows),
        senders=senders,
    )


def get_access_window_repository(db: AsyncSession = Depends(get_db)) -> SqlAccessWindowRepository:
    return SqlAccessWindowRepository(db)


def get_transcript_repository(db: AsyncSession = Depends(get_db)) -> SqlTranscriptRepository:
    return SqlTranscriptRepository(db)


def get_user_repository(db: AsyncSession = Depends(get_db)) -> SqlUserRepository:
    return SqlUserRepository(db)
