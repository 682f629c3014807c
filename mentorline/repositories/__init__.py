from mentorline.repositories.base import (
    AccessWindowRepository,
    ProgramRepository,
    SessionRepository,
    TranscriptRepository,
    UserRepository,
)
from mentorline.repositories.sqlalchemy import (
    SqlAccessWindowRepository,
    SqlProgramRepository,
    SqlSessionRepository,
    SqlTranscriptRepository,
    SqlUserRepository,
)

__all__ = [
    "UserRepository",
    "ProgramRepository",
    "SessionRepository",
    "AccessWindowRepository",
    "TranscriptRepository",
    "SqlUserRepository",
    "SqlProgramRepository",
    "SqlSessionRepository",
    "SqlAccessWindowRepository",
    "SqlTranscriptRepository",
]
