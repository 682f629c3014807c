import asyncio
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from mentorline.models import ConversationSession, User
from mentorline.services.access_guard import ACCESS_EXPIRED_MESSAGE
from mentorline.services.conversation_orchestrator import UNREADABLE_MESSAGE_REPLY
from mentorline.services.errors import DeliveryConfigurationError, NotFoundError, RunFailedError, RunTimeoutError
from mentorline.services.providers import WhatsAppProvider
from mentorline.services.user_service import PLACEHOLDER_USER_NAME
from tests.conftest import make_window

PHONE = "5511999999999"


def add_user(users, phone=PHONE, name="Maria"):
    user = User(id=uuid4(), phone_number=phone, name=name, status="active")
    users.users[user.id] = user
    return user


def add_session(sessions, access_windows, user, program, status="active", days_left=10.0, thread_id="thread_existing"):
    session = ConversationSession(
        id=uuid4(),
        user_id=user.id,
        program_id=program.id,
        ai_provider="openai",
        thread_id=thread_id,
        status=status,
        total_messages=10,
    )
    sessions.sessions.append(session)
    access_windows.windows[session.id] = make_window(session.id, days_left=days_left)
    return session


def mock_sender(result=True):
    sender = Mock()
    sender.provider = WhatsAppProvider.EVOLUTION
    sender.send_message = AsyncMock(return_value=result)
    return sender


class TestProcessMessage:
    def test_first_message_creates_everything(self, orchestrator, program, users, sessions, access_windows, transcripts, assistant):
        result = asyncio.run(orchestrator.process_message(PHONE, "Hi", program.id))

        assert result.reply == "Hi there!"
        assert result.program is program

        (user,) = users.users.values()
        assert user.phone_number == PHONE
        assert user.name == PLACEHOLDER_USER_NAME

        (session,) = sessions.sessions
        assert session.user_id == user.id
        assert session.thread_id == "thread_1"
        assert session.total_messages == 2
        assert session.last_interaction_at is not None
        assert access_windows.windows[session.id].progress_percentage == 0

        assert assistant.threads_created == 1
        assert assistant.messages == [("thread_1", "Hi")]
        assert assistant.runs == [("thread_1", "asst_TEST")]
        assert sorted((e.role, e.content) for e in transcripts.entries) == [
            ("assistant", "Hi there!"),
            ("user", "Hi"),
        ]

    def test_existing_session_reuses_thread(self, orchestrator, program, users, sessions, access_windows, assistant):
        user = add_user(users)
        session = add_session(sessions, access_windows, user, program)

        asyncio.run(orchestrator.process_message(PHONE, "Hello!", program.id))

        assert assistant.threads_created == 0
        assert assistant.runs == [("thread_existing", "asst_TEST")]
        assert session.total_messages == 12
        assert len(sessions.sessions) == 1

    def test_progress_is_recomputed(self, orchestrator, program, users, sessions, access_windows):
        user = add_user(users)
        session = add_session(sessions, access_windows, user, program)
        session.total_messages = 148

        asyncio.run(orchestrator.process_message(PHONE, "Hello!", program.id))

        assert access_windows.windows[session.id].progress_percentage == 50

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_empty_text_skips_user_and_session_work(self, orchestrator, program, users, sessions, assistant, text):
        result = asyncio.run(orchestrator.process_message(PHONE, text, program.id))

        assert result.reply == UNREADABLE_MESSAGE_REPLY
        assert result.program is program
        assert users.lookups == 0
        assert sessions.lookups == 0
        assert assistant.runs == []

    def test_empty_text_with_missing_program(self, orchestrator):
        with pytest.raises(NotFoundError):
            asyncio.run(orchestrator.process_message(PHONE, "", uuid4()))

    def test_missing_program_raises(self, orchestrator, assistant):
        with pytest.raises(NotFoundError) as exc_info:
            asyncio.run(orchestrator.process_message(PHONE, "Hi", uuid4()))

        assert exc_info.value.entity == "Program"
        assert assistant.runs == []

    def test_expired_active_session_returns_expired_reply(self, orchestrator, program, users, sessions, access_windows, transcripts, assistant):
        user = add_user(users)
        session = add_session(sessions, access_windows, user, program, days_left=-1)

        result = asyncio.run(orchestrator.process_message(PHONE, "Hello!", program.id))

        assert result.reply == ACCESS_EXPIRED_MESSAGE
        assert session.status == "expired"
        assert assistant.messages == []
        assert assistant.runs == []
        assert transcripts.entries == []

    def test_expired_inactive_session_returns_same_reply(self, orchestrator, program, users, sessions, access_windows, assistant):
        user = add_user(users)
        session = add_session(sessions, access_windows, user, program, status="paused", days_left=-1)

        result = asyncio.run(orchestrator.process_message(PHONE, "Hello!", program.id))

        assert result.reply == ACCESS_EXPIRED_MESSAGE
        assert session.status == "expired"
        assert assistant.runs == []

    def test_paused_session_is_reactivated(self, orchestrator, program, users, sessions, access_windows, assistant):
        user = add_user(users)
        session = add_session(sessions, access_windows, user, program, status="paused")

        result = asyncio.run(orchestrator.process_message(PHONE, "I'm back", program.id))

        assert result.reply == "Hi there!"
        assert session.status == "active"
        assert len(assistant.runs) == 1

    def test_run_failure_propagates_without_transcript(self, orchestrator, program, transcripts, assistant):
        assistant.run_assistant = AsyncMock(side_effect=RunFailedError("run_1", "failed", "server_error: boom"))

        with pytest.raises(RunFailedError):
            asyncio.run(orchestrator.process_message(PHONE, "Hi", program.id))

        assert transcripts.entries == []

    def test_run_failure_keeps_created_thread(self, orchestrator, program, sessions, assistant):
        assistant.run_assistant = AsyncMock(side_effect=RunTimeoutError("run_1", 300))

        with pytest.raises(RunTimeoutError):
            asyncio.run(orchestrator.process_message(PHONE, "Hi", program.id))

        assert sessions.sessions[0].thread_id == "thread_1"
        assert sessions.commits == 1
        assert assistant.messages == [("thread_1", "Hi")]


class TestSendWelcomeMessage:
    def test_sends_welcome(self, orchestrator, program, transcripts, assistant, sessions):
        sender = mock_sender()
        orchestrator.senders = {WhatsAppProvider.EVOLUTION: sender}

        sent = asyncio.run(orchestrator.send_welcome_message(PHONE, program.id, "Maria"))

        assert sent is True
        (thread_id, prompt), = assistant.messages
        assert "Maria" in prompt
        assert program.name in prompt
        sender.send_message.assert_awaited_once_with(PHONE, "Hi there!", program)
        assert sessions.sessions[0].total_messages == 2
        assert [e.role for e in transcripts.entries].count("assistant") == 1

    def test_second_welcome_does_not_contact_assistant(self, orchestrator, program, assistant):
        sender = mock_sender()
        orchestrator.senders = {WhatsAppProvider.EVOLUTION: sender}

        first = asyncio.run(orchestrator.send_welcome_message(PHONE, program.id, "Maria"))
        second = asyncio.run(orchestrator.send_welcome_message(PHONE, program.id, "Maria"))

        assert first is True
        assert second is True
        assert len(assistant.runs) == 1
        assert sender.send_message.await_count == 1

    def test_delivery_failure_returns_false(self, orchestrator, program, transcripts):
        orchestrator.senders = {WhatsAppProvider.EVOLUTION: mock_sender(result=False)}

        sent = asyncio.run(orchestrator.send_welcome_message(PHONE, program.id, "Maria"))

        assert sent is False
        assert len(transcripts.entries) == 2

    def test_misconfigured_delivery_returns_false(self, orchestrator, program):
        sender = mock_sender()
        sender.send_message = AsyncMock(side_effect=DeliveryConfigurationError("Instance code not configured"))
        orchestrator.senders = {WhatsAppProvider.EVOLUTION: sender}

        assert asyncio.run(orchestrator.send_welcome_message(PHONE, program.id, "Maria")) is False

    def test_unconfigured_provider_returns_false(self, orchestrator, program, assistant):
        sent = asyncio.run(orchestrator.send_welcome_message(PHONE, program.id, "Maria"))

        assert sent is False
        assert len(assistant.runs) == 1

    def test_expired_access_returns_false(self, orchestrator, program, users, sessions, access_windows, assistant):
        user = add_user(users)
        add_session(sessions, access_windows, user, program, days_left=-1)
        orchestrator.senders = {WhatsAppProvider.EVOLUTION: mock_sender()}

        assert asyncio.run(orchestrator.send_welcome_message(PHONE, program.id, "Maria")) is False
        assert assistant.runs == []


class TestGetOrCreateUser:
    def test_creates_with_placeholder_name(self, orchestrator, users):
        user = asyncio.run(orchestrator.get_or_create_user(PHONE))

        assert user.name == PLACEHOLDER_USER_NAME
        assert user.status == "active"
        assert list(users.users.values()) == [user]

    def test_returns_existing(self, orchestrator, users):
        existing = add_user(users)

        assert asyncio.run(orchestrator.get_or_create_user(PHONE)) is existing
        assert len(users.users) == 1
