from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from mentorline.database import Base


class SessionAccessWindow(Base):
    __tablename__ = "session_access_windows"
    __table_args__ = (
        CheckConstraint(
            "progress_percentage BETWEEN 0 AND 100",
            name="ck_session_access_windows_progress_range",
        ),
    )

    session_id = Column(
        UUID(as_uuid=True),
        ForeignKey("conversation_sessions.id", ondelete="CASCADE"),
        primary_key=True,
    )
    access_start_at = Column(TIMESTAMP(timezone=True), nullable=False)
    access_end_at = Column(TIMESTAMP(timezone=True), nullable=False)  # fixed at creation
    progress_percentage = Column(Integer, nullable=False, default=0)
    report_generated = Column(Boolean, nullable=False, default=False)
    report_generated_at = Column(TIMESTAMP(timezone=True))
    admin_notes = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())

    session = relationship("ConversationSession", back_populates="access_window")
