from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class AccessWindowOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    access_start_at: datetime
    access_end_at: datetime
    progress_percentage: int
    report_generated: bool = False


class SessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    program_id: UUID
    ai_provider: str
    thread_id: Optional[str] = None
    status: str
    last_interaction_at: Optional[datetime] = None
    total_messages: int


class SessionDetailResponse(BaseModel):
    session: SessionOut
    access_window: Optional[AccessWindowOut] = None


class SessionTransitionResponse(BaseModel):
    success: bool
    session_id: UUID
    old_status: str
    new_status: str


class TranscriptEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    role: str
    content: str
    message_type: str = "text"
    created_at: datetime


class TranscriptResponse(BaseModel):
    session_id: UUID
    entries: List[TranscriptEntryOut]


class UserSessionsResponse(BaseModel):
    user_id: UUID
    sessions: List[SessionOut]
