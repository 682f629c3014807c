from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class EnrollmentRequest(BaseModel):
    phone_number: str = Field(min_length=8)
    name: str = Field(min_length=1, max_length=200)
    email: Optional[str] = None
    program_id: UUID
    purchase_id: Optional[str] = None
    purchase_date: Optional[datetime] = None

    @field_validator("phone_number")
    @classmethod
    def digits_only(cls, value: str) -> str:
        digits = "".join(ch for ch in value if ch.isdigit())
        if len(digits) < 8:
            raise ValueError("phone_number must contain at least 8 digits")
        return digits


class EnrollmentResponse(BaseModel):
    success: bool
    session_id: UUID
    welcome_message_sent: bool
    message: str
