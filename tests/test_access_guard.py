import asyncio
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from mentorline.models import ConversationSession
from mentorline.services.access_guard import (
    ACCESS_EXPIRED_CODE,
    ACCESS_EXPIRED_MESSAGE,
    AccessGuard,
    is_access_expired,
)
from tests.conftest import FakeSessionRepository, make_window


def make_session(status="active"):
    return ConversationSession(id=uuid4(), user_id=uuid4(), program_id=uuid4(), status=status, total_messages=0)


class TestIsAccessExpired:
    def test_open_window(self):
        assert is_access_expired(make_window(uuid4(), days_left=5)) is False

    def test_closed_window(self):
        assert is_access_expired(make_window(uuid4(), days_left=-1)) is True

    def test_uses_given_time(self):
        window = make_window(uuid4(), days_left=5)
        later = datetime.now(timezone.utc) + timedelta(days=6)

        assert is_access_expired(window, now=later) is True


class TestValidateAccess:
    def test_open_window_is_valid(self):
        sessions = FakeSessionRepository()
        session = make_session()

        result = asyncio.run(AccessGuard(sessions).validate_access(session, make_window(session.id)))

        assert result.ok is True
        assert session.status == "active"
        assert sessions.updated == []

    def test_expired_window_marks_session_expired(self):
        sessions = FakeSessionRepository()
        session = make_session()
        window = make_window(session.id, days_left=-1)

        result = asyncio.run(AccessGuard(sessions).validate_access(session, window))

        assert result.ok is False
        assert result.error_code == ACCESS_EXPIRED_CODE
        assert result.error == ACCESS_EXPIRED_MESSAGE
        assert session.status == "expired"
        assert sessions.updated == [(session.id, "expired")]

    def test_second_call_does_not_transition_again(self):
        sessions = FakeSessionRepository()
        session = make_session()
        window = make_window(session.id, days_left=-1)
        guard = AccessGuard(sessions)

        asyncio.run(guard.validate_access(session, window))
        result = asyncio.run(guard.validate_access(session, window))

        assert result.failed_with(ACCESS_EXPIRED_CODE)
        assert session.status == "expired"
        assert len(sessions.updated) == 1
