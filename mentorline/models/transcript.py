import uuid

from sqlalchemy import Column, ForeignKey, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship

from mentorline.database import Base


class TranscriptEntry(Base):
    __tablename__ = "transcript_entries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(UUID(as_uuid=True), ForeignKey("conversation_sessions.id"), nullable=False, index=True)
    role = Column(Text, nullable=False)  # user, assistant
    content = Column(Text, nullable=False)
    message_type = Column(Text, nullable=False, default="text")
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)

    session = relationship("ConversationSession", back_populates="transcript")
