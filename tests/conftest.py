from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID, uuid4

import pytest

from mentorline.models import ConversationSession, Program, SessionAccessWindow, TranscriptEntry, User
from mentorline.repositories.base import (
    AccessWindowRepository,
    ProgramRepository,
    SessionRepository,
    TranscriptRepository,
    UserRepository,
)
from mentorline.services.access_guard import AccessGuard
from mentorline.services.assistant.base import AssistantService
from mentorline.services.conversation_orchestrator import ConversationOrchestrator
from mentorline.services.errors import SessionConflictError
from mentorline.services.session_resolver import SessionResolver
from mentorline.services.session_state_service import SessionStateService


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FakeUserRepository(UserRepository):
    def __init__(self):
        self.users = {}
        self.lookups = 0
        self.updated = []

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        self.lookups += 1
        return self.users.get(user_id)

    async def get_by_phone(self, phone_number: str) -> Optional[User]:
        self.lookups += 1
        return next((u for u in self.users.values() if u.phone_number == phone_number), None)

    async def create(self, user: User) -> User:
        user.id = user.id or uuid4()
        user.created_at = _now()
        self.users[user.id] = user
        return user

    async def update(self, user: User) -> User:
        self.updated.append(user)
        return user


class FakeProgramRepository(ProgramRepository):
    def __init__(self, *programs: Program):
        self.programs = {p.id: p for p in programs}

    async def get_by_id(self, program_id: UUID) -> Optional[Program]:
        return self.programs.get(program_id)


class FakeSessionRepository(SessionRepository):
    """In-memory sessions; create() enforces one active session per pair like the unique index."""

    def __init__(self):
        self.sessions: List[ConversationSession] = []
        self.lookups = 0
        self.updated = []
        self.commits = 0

    async def get_by_id(self, session_id: UUID) -> Optional[ConversationSession]:
        return next((s for s in self.sessions if s.id == session_id), None)

    async def get_active(self, user_id: UUID, program_id: UUID) -> Optional[ConversationSession]:
        self.lookups += 1
        return next(
            (
                s
                for s in self.sessions
                if s.user_id == user_id and s.program_id == program_id and s.status == "active"
            ),
            None,
        )

    async def get_latest(self, user_id: UUID, program_id: UUID) -> Optional[ConversationSession]:
        self.lookups += 1
        matches = [s for s in self.sessions if s.user_id == user_id and s.program_id == program_id]
        return matches[-1] if matches else None

    async def list_by_user(self, user_id: UUID) -> List[ConversationSession]:
        return [s for s in reversed(self.sessions) if s.user_id == user_id]

    async def create(self, session: ConversationSession) -> ConversationSession:
        if session.status == "active":
            for existing in self.sessions:
                if (
                    existing.user_id == session.user_id
                    and existing.program_id == session.program_id
                    and existing.status == "active"
                ):
                    raise SessionConflictError("duplicate key value violates unique constraint")
        session.id = session.id or uuid4()
        session.created_at = _now()
        self.sessions.append(session)
        return session

    async def update(self, session: ConversationSession) -> ConversationSession:
        self.updated.append((session.id, session.status))
        return session

    async def commit(self) -> None:
        self.commits += 1


class FakeAccessWindowRepository(AccessWindowRepository):
    def __init__(self):
        self.windows = {}
        self.updated = []

    async def get(self, session_id: UUID) -> Optional[SessionAccessWindow]:
        return self.windows.get(session_id)

    async def create(self, window: SessionAccessWindow) -> SessionAccessWindow:
        self.windows[window.session_id] = window
        return window

    async def update(self, window: SessionAccessWindow) -> SessionAccessWindow:
        self.updated.append(window.session_id)
        return window


class FakeTranscriptRepository(TranscriptRepository):
    def __init__(self):
        self.entries: List[TranscriptEntry] = []

    async def append(self, session_id: UUID, role: str, content: str) -> TranscriptEntry:
        entry = TranscriptEntry(
            id=uuid4(), session_id=session_id, role=role, content=content, message_type="text", created_at=_now()
        )
        self.entries.append(entry)
        return entry

    async def history(self, session_id: UUID, limit: int = 20) -> List[TranscriptEntry]:
        return [e for e in self.entries if e.session_id == session_id][-limit:]

    async def has_assistant_entry(self, session_id: UUID) -> bool:
        return any(e.session_id == session_id and e.role == "assistant" for e in self.entries)


class FakeAssistant(AssistantService):
    def __init__(self, reply: str = "Hi there!"):
        self.reply = reply
        self.threads_created = 0
        self.messages = []
        self.runs = []

    async def create_thread(self) -> str:
        self.threads_created += 1
        return f"thread_{self.threads_created}"

    async def add_user_message(self, thread_id: str, text: str) -> None:
        self.messages.append((thread_id, text))

    async def run_assistant(self, thread_id: str, assistant_id: str) -> str:
        self.runs.append((thread_id, assistant_id))
        return self.reply


def make_program(**overrides) -> Program:
    fields = dict(
        id=uuid4(),
        name="Leadership Mentorship",
        assistant_id="asst_TEST",
        duration_days=30,
        status="active",
        whatsapp_provider="evolution",
        instance_code="mentor-instance",
        instance_token=None,
    )
    fields.update(overrides)
    return Program(**fields)


def make_window(session_id: UUID, days_left: float = 10, progress: int = 0) -> SessionAccessWindow:
    now = _now()
    return SessionAccessWindow(
        session_id=session_id,
        access_start_at=now - timedelta(days=1),
        access_end_at=now + timedelta(days=days_left),
        progress_percentage=progress,
        report_generated=False,
    )


@pytest.fixture
def program():
    return make_program()


@pytest.fixture
def users():
    return FakeUserRepository()


@pytest.fixture
def programs(program):
    return FakeProgramRepository(program)


@pytest.fixture
def sessions():
    return FakeSessionRepository()


@pytest.fixture
def access_windows():
    return FakeAccessWindowRepository()


@pytest.fixture
def transcripts():
    return FakeTranscriptRepository()


@pytest.fixture
def assistant():
    return FakeAssistant()


@pytest.fixture
def resolver(sessions, access_windows, assistant):
    return SessionResolver(sessions, access_windows, assistant)


@pytest.fixture
def orchestrator(users, programs, transcripts, resolver, sessions, access_windows, assistant):
    return ConversationOrchestrator(
        users=users,
        programs=programs,
        transcripts=transcripts,
        resolver=resolver,
        guard=AccessGuard(sessions),
        assistant=assistant,
        state_service=SessionStateService(sessions, access_windows),
    )
