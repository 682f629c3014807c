"""Session administration endpoints."""

from typing import Callable
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from mentorline.dependencies import get_access_window_repository, get_session_repository, get_transcript_repository
from mentorline.logging_config import get_logger
from mentorline.models import ConversationSession
from mentorline.repositories.base import AccessWindowRepository, SessionRepository, TranscriptRepository
from mentorline.schemas.session import (
    AccessWindowOut,
    SessionDetailResponse,
    SessionOut,
    SessionTransitionResponse,
    TranscriptEntryOut,
    TranscriptResponse,
)
from mentorline.services import session_status
from mentorline.services.errors import NotFoundError, SessionAlreadyActiveError
from mentorline.services.session_status import SessionStatus

logger = get_logger("sessions")

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


async def _get_session_or_404(sessions: SessionRepository, session_id: UUID) -> ConversationSession:
    session = await sessions.get_by_id(session_id)
    if session is None:
        raise NotFoundError("Session", session_id)
    return session


@router.get("/{session_id}", response_model=SessionDetailResponse)
async def get_session(
    session_id: UUID,
    sessions: SessionRepository = Depends(get_session_repository),
    access_windows: AccessWindowRepository = Depends(get_access_window_repository),
):
    session = await _get_session_or_404(sessions, session_id)
    window = await access_windows.get(session.id)
    return SessionDetailResponse(
        session=SessionOut.model_validate(session),
        access_window=AccessWindowOut.model_validate(window) if window else None,
    )


@router.get("/{session_id}/transcript", response_model=TranscriptResponse)
async def get_transcript(
    session_id: UUID,
    limit: int = Query(20, ge=1, le=200),
    sessions: SessionRepository = Depends(get_session_repository),
    transcripts: TranscriptRepository = Depends(get_transcript_repository),
):
    """Most recent transcript entries, oldest first."""
    session = await _get_session_or_404(sessions, session_id)
    entries = await transcripts.history(session.id, limit=limit)
    return TranscriptResponse(
        session_id=session.id,
        entries=[TranscriptEntryOut.model_validate(e) for e in entries],
    )


async def _apply_transition(
    sessions: SessionRepository,
    session_id: UUID,
    action: Callable[[SessionStatus], SessionStatus],
) -> SessionTransitionResponse:
    session = await _get_session_or_404(sessions, session_id)
    old_status = SessionStatus(session.status)
    new_status = action(old_status)

    # resuming must not create a second active session for the pair
    if new_status == SessionStatus.ACTIVE and old_status != SessionStatus.ACTIVE:
        active = await sessions.get_active(session.user_id, session.program_id)
        if active is not None and active.id != session.id:
            raise SessionAlreadyActiveError(session.user_id, session.program_id, active.id)

    if new_status != old_status:
        session.status = new_status.value
        await sessions.update(session)
        logger.info(f"Session {session.id} status: {old_status.value} -> {new_status.value}")

    return SessionTransitionResponse(
        success=True,
        session_id=session.id,
        old_status=old_status.value,
        new_status=new_status.value,
    )


@router.post("/{session_id}/pause", response_model=SessionTransitionResponse)
async def pause_session(session_id: UUID, sessions: SessionRepository = Depends(get_session_repository)):
    return await _apply_transition(sessions, session_id, session_status.pause)


@router.post("/{session_id}/resume", response_model=SessionTransitionResponse)
async def resume_session(session_id: UUID, sessions: SessionRepository = Depends(get_session_repository)):
    return await _apply_transition(sessions, session_id, session_status.resume)


@router.post("/{session_id}/expire", response_model=SessionTransitionResponse)
async def expire_session(session_id: UUID, sessions: SessionRepository = Depends(get_session_repository)):
    return await _apply_transition(sessions, session_id, session_status.expire)
