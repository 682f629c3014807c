from mentorline.models.access_window import SessionAccessWindow
from mentorline.models.program import Program
from mentorline.models.session import ConversationSession
from mentorline.models.transcript import TranscriptEntry
from mentorline.models.user import User

__all__ = [
    "User",
    "Program",
    "ConversationSession",
    "SessionAccessWindow",
    "TranscriptEntry",
]
