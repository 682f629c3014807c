from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from mentorline.config import settings
from mentorline.database import check_db_connection
from mentorline.logging_config import get_logger, setup_logging
from mentorline.routers import enrollments, sessions, users, webhook
from mentorline.services.alert_service import alert_error
from mentorline.services.assistant import OpenAIAssistantService
from mentorline.services.delivery import build_sender_table
from mentorline.services.errors import (
    NotFoundError,
    RunFailedError,
    RunTimeoutError,
    SessionAlreadyActiveError,
)
from mentorline.services.http_retry import RetryPolicy
from mentorline.services.session_status import InvalidTransitionError
from mentorline.services.webhook_adapters import default_normalizer

setup_logging(settings.log_level)

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.assistant = OpenAIAssistantService(
        settings.openai_api_key,
        settings.openai_base_url,
        poll_interval_seconds=settings.assistant_poll_interval_seconds,
        active_run_timeout_seconds=settings.assistant_active_run_timeout_seconds,
        run_timeout_seconds=settings.assistant_run_timeout_seconds,
        retry_policy=RetryPolicy(
            "openai",
            max_retries=settings.http_retry_attempts,
            base_delay_seconds=settings.http_retry_base_delay_seconds,
        ),
    )
    app.state.senders = build_sender_table(settings)
    app.state.normalizer = default_normalizer()
    logger.info("Mentorline API started", extra={"context": {"providers": [p.value for p in app.state.senders]}})
    try:
        yield
    finally:
        await app.state.assistant.aclose()
        for sender in app.state.senders.values():
            await sender.aclose()
        logger.info("Mentorline API stopped")


app = FastAPI(
    title="Mentorline API",
    description="WhatsApp conversation engine for mentorship programs",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(webhook.router)
app.include_router(enrollments.router)
app.include_router(sessions.router)
app.include_router(users.router)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"success": False, "error": str(exc)})


@app.exception_handler(InvalidTransitionError)
@app.exception_handler(SessionAlreadyActiveError)
async def conflict_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"success": False, "error": str(exc)})


@app.exception_handler(RunFailedError)
@app.exception_handler(RunTimeoutError)
async def assistant_run_handler(request: Request, exc: Exception):
    logger.error(f"Assistant run error on {request.url.path}: {exc}")
    await alert_error("Assistant run did not complete", {"path": request.url.path, "error": str(exc)})
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"success": False, "error": "The assistant could not produce a reply"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error"},
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/db-check")
async def db_check():
    connected = await check_db_connection()
    return {"status": "ok" if connected else "error", "database": connected}
