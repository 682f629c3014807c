import uuid

from sqlalchemy import Column, Integer, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.sql import func

from mentorline.database import Base


class Program(Base):
    """Mentorship program a user enrolls in; owned outside the conversation core."""

    __tablename__ = "programs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    mentor_id = Column(UUID(as_uuid=True))
    assistant_id = Column(Text, nullable=False)
    duration_days = Column(Integer, nullable=False)
    description = Column(Text)
    status = Column(Text, nullable=False, default="active")  # active, inactive, archived
    whatsapp_provider = Column(Text, nullable=False, default="evolution")  # evolution, zapi
    instance_code = Column(Text)
    instance_token = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
