from uuid import UUID

from fastapi import APIRouter, Depends

from mentorline.dependencies import get_session_repository, get_user_repository
from mentorline.repositories.base import SessionRepository, UserRepository
from mentorline.schemas.session import SessionOut, UserSessionsResponse
from mentorline.services.errors import NotFoundError

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/{user_id}/sessions", response_model=UserSessionsResponse)
async def list_user_sessions(
    user_id: UUID,
    users: UserRepository = Depends(get_user_repository),
    sessions: SessionRepository = Depends(get_session_repository),
):
    """All sessions of a user across programs, newest first."""
    user = await users.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    items = await sessions.list_by_user(user.id)
    return UserSessionsResponse(user_id=user.id, sessions=[SessionOut.model_validate(s) for s in items])
