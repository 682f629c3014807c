import httpx
from fastapi import APIRouter, Depends

from mentorline.dependencies import get_orchestrator
from mentorline.logging_config import get_logger
from mentorline.schemas.enrollment import EnrollmentRequest, EnrollmentResponse
from mentorline.services.conversation_orchestrator import ConversationOrchestrator
from mentorline.services.errors import (
    AssistantAPIError,
    NotFoundError,
    RunFailedError,
    RunTimeoutError,
    SessionAlreadyActiveError,
)
from mentorline.services.user_service import upsert_enrolled_user

logger = get_logger("enrollments")

router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])


@router.post("", response_model=EnrollmentResponse)
async def create_enrollment(
    request: EnrollmentRequest,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    """Register a purchase: user, active session and a welcome message.

    The enrollment succeeds even when the welcome message cannot be delivered.
    """
    logger.info(
        "Enrollment received",
        extra={"context": {"phone": request.phone_number, "program_id": str(request.program_id), "purchase_id": request.purchase_id}},
    )

    program = await orchestrator.programs.get_by_id(request.program_id)
    if program is None:
        raise NotFoundError("Program", request.program_id)

    user = await upsert_enrolled_user(orchestrator.users, request.phone_number, request.name, request.email)

    try:
        context = await orchestrator.resolver.create_session(user.id, program.id, program.duration_days)
        session_id = context.session.id
    except SessionAlreadyActiveError as e:
        if e.session_id is None:
            raise
        logger.info(f"Reusing active session {e.session_id} for enrollment")
        session_id = e.session_id

    welcome_sent = False
    try:
        welcome_sent = await orchestrator.send_welcome_message(request.phone_number, program.id, request.name)
    except (AssistantAPIError, RunFailedError, RunTimeoutError, httpx.HTTPError) as e:
        logger.error(f"Error sending welcome message, enrollment was created: {e}")

    if welcome_sent:
        message = "Enrollment created successfully and welcome message sent"
    else:
        logger.warning(f"Welcome message not sent for session {session_id}")
        message = "Enrollment created successfully, but welcome message could not be sent"

    return EnrollmentResponse(
        success=True,
        session_id=session_id,
        welcome_message_sent=welcome_sent,
        message=message,
    )
