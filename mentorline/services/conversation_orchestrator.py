"""Per-message conversation flow for mentorship programs.

An inbound message goes through user and program lookup, session resolution,
the access window check and one assistant run, then both sides of the
exchange are written to the transcript and session counters are updated.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from mentorline.logging_config import SessionLoggerAdapter, get_logger
from mentorline.models import Program, User
from mentorline.repositories.base import ProgramRepository, TranscriptRepository, UserRepository
from mentorline.services import user_service
from mentorline.services.access_guard import ACCESS_EXPIRED_CODE, ACCESS_EXPIRED_MESSAGE, AccessGuard
from mentorline.services.assistant.base import AssistantService
from mentorline.services.delivery.base import SenderTable, get_sender
from mentorline.services.errors import (
    AccessExpiredError,
    DeliveryConfigurationError,
    NotFoundError,
    UnsupportedProviderError,
)
from mentorline.services.session_resolver import SessionContext, SessionResolver
from mentorline.services.session_state_service import SessionStateService

logger = get_logger("conversation_orchestrator")

UNREADABLE_MESSAGE_REPLY = "Sorry, I could not understand your message. Please send a text message."

WELCOME_PROMPT_TEMPLATE = (
    "A new participant named {name} has just enrolled in the {program} mentorship. "
    "Greet them by name, introduce yourself briefly and explain how you can help during the program."
)


@dataclass
class ProcessResult:
    reply: str
    program: Program


class ConversationOrchestrator:
    def __init__(
        self,
        users: UserRepository,
        programs: ProgramRepository,
        transcripts: TranscriptRepository,
        resolver: SessionResolver,
        guard: AccessGuard,
        assistant: AssistantService,
        state_service: SessionStateService,
        senders: Optional[SenderTable] = None,
    ):
        self.users = users
        self.programs = programs
        self.transcripts = transcripts
        self.resolver = resolver
        self.guard = guard
        self.assistant = assistant
        self.state_service = state_service
        self.senders = senders or {}

    async def get_or_create_user(self, phone_number: str) -> User:
        return await user_service.get_or_create_user(self.users, phone_number)

    async def process_message(self, phone_number: str, text: str, program_id: UUID) -> ProcessResult:
        """Produce the assistant reply for one inbound message.

        Raises:
            NotFoundError: program does not exist
            RunFailedError, RunTimeoutError: the assistant run did not complete
        """
        if not text or not text.strip():
            logger.warning(f"Received empty message from {phone_number}")
            program = await self._get_program(program_id)
            return ProcessResult(reply=UNREADABLE_MESSAGE_REPLY, program=program)

        logger.info(
            "Processing message",
            extra={"context": {"phone": phone_number, "program_id": str(program_id), "length": len(text)}},
        )

        user = await self.get_or_create_user(phone_number)
        program = await self._get_program(program_id)

        context = await self._resolve_context(user, program)
        if context is None:
            return ProcessResult(reply=ACCESS_EXPIRED_MESSAGE, program=program)

        session, window = context.session, context.access_window
        session_log = SessionLoggerAdapter(logger, {"session_id": str(session.id), "phone": phone_number})
        thread_id = await self.resolver.ensure_thread_exists(session)

        await self.assistant.add_user_message(thread_id, text)
        reply = await self.assistant.run_assistant(thread_id, program.assistant_id)

        await asyncio.gather(
            self.transcripts.append(session.id, "user", text),
            self.transcripts.append(session.id, "assistant", reply),
        )
        await self.state_service.update_after_message(session, window, program.duration_days)

        session_log.info("Message processed", context={"total_messages": session.total_messages})
        return ProcessResult(reply=reply, program=program)

    async def send_welcome_message(self, phone_number: str, program_id: UUID, display_name: str) -> bool:
        """Greet a newly enrolled participant.

        Returns True when the welcome was delivered or had already been sent
        for this session. Delivery failures are reported as False.
        """
        user = await self.get_or_create_user(phone_number)
        program = await self._get_program(program_id)

        context = await self._resolve_context(user, program)
        if context is None:
            return False
        session = context.session

        if await self.transcripts.has_assistant_entry(session.id):
            logger.info(f"Welcome message already sent for session {session.id}")
            return True

        thread_id = await self.resolver.ensure_thread_exists(session)
        prompt = WELCOME_PROMPT_TEMPLATE.format(name=display_name or user.name, program=program.name)

        await self.assistant.add_user_message(thread_id, prompt)
        reply = await self.assistant.run_assistant(thread_id, program.assistant_id)

        await asyncio.gather(
            self.transcripts.append(session.id, "user", prompt),
            self.transcripts.append(session.id, "assistant", reply),
        )
        await self.state_service.update_for_welcome_message(session)

        return await self._deliver(phone_number, reply, program)

    async def _get_program(self, program_id: UUID) -> Program:
        program = await self.programs.get_by_id(program_id)
        if program is None:
            logger.error(f"Program {program_id} not found")
            raise NotFoundError("Program", program_id)
        return program

    async def _resolve_context(self, user: User, program: Program) -> Optional[SessionContext]:
        """Session and window for the pair, or None when access has ended."""
        try:
            context = await self.resolver.get_or_create_session_context(user.id, program.id, program.duration_days)
        except AccessExpiredError:
            logger.warning(f"Access expired for user {user.id} in program {program.id}")
            return None

        validation = await self.guard.validate_access(context.session, context.access_window)
        if validation.failed_with(ACCESS_EXPIRED_CODE):
            return None
        return context

    async def _deliver(self, phone_number: str, text: str, program: Program) -> bool:
        try:
            sender = get_sender(self.senders, program)
            return await sender.send_message(phone_number, text, program)
        except (UnsupportedProviderError, DeliveryConfigurationError) as e:
            logger.error(f"Welcome message not delivered for program {program.id}: {e}")
            return False
