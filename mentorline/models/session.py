import uuid

from sqlalchemy import Column, ForeignKey, Index, Integer, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from mentorline.database import Base


class ConversationSession(Base):
    __tablename__ = "conversation_sessions"
    __table_args__ = (
        # at most one active session per (user, program)
        Index(
            "uq_conversation_sessions_active_user_program",
            "user_id",
            "program_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    program_id = Column(UUID(as_uuid=True), ForeignKey("programs.id"), nullable=False)
    ai_provider = Column(Text, nullable=False, default="openai")
    thread_id = Column(Text)
    status = Column(Text, nullable=False, default="active")  # active, paused, expired, completed
    last_interaction_at = Column(TIMESTAMP(timezone=True))
    total_messages = Column(Integer, nullable=False, default=0)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    user = relationship("User", back_populates="sessions")
    access_window = relationship(
        "SessionAccessWindow",
        back_populates="session",
        uselist=False,
        cascade="all, delete-orphan",
    )
    transcript = relationship("TranscriptEntry", back_populates="session")
