"""Domain exceptions shared across the conversation services."""

from typing import Optional


class NotFoundError(Exception):
    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class AccessExpiredError(Exception):
    def __init__(self, session_id: object):
        self.session_id = session_id
        super().__init__(f"Access expired for session {session_id}")


class SessionAlreadyActiveError(Exception):
    def __init__(self, user_id: object, program_id: object, session_id: object = None):
        self.user_id = user_id
        self.program_id = program_id
        self.session_id = session_id
        super().__init__(f"Active session already exists for user {user_id} and program {program_id}")


class SessionConflictError(Exception):
    """Raised by persistence when the one-active-session index rejects an insert."""


class RunFailedError(Exception):
    def __init__(self, run_id: str, status: str, detail: Optional[str] = None):
        self.run_id = run_id
        self.status = status
        self.detail = detail or "Unknown error"
        super().__init__(f"Run {run_id} ended with status {status}: {self.detail}")


class RunTimeoutError(Exception):
    def __init__(self, run_id: str, waited_seconds: float):
        self.run_id = run_id
        self.waited_seconds = waited_seconds
        super().__init__(f"Run {run_id} did not complete within {waited_seconds:.0f}s")


class UnsupportedProviderError(Exception):
    pass


class DeliveryConfigurationError(Exception):
    pass


class AssistantAPIError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Assistant API error: {status_code} - {message}")

    @property
    def is_active_run_conflict(self) -> bool:
        """The thread rejected the call because a run is still active on it."""
        text = self.message.lower()
        return self.status_code == 400 and "run" in text and "active" in text
