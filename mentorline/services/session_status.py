from enum import Enum


class SessionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    EXPIRED = "expired"
    COMPLETED = "completed"


VALID_TRANSITIONS = {
    SessionStatus.ACTIVE: [SessionStatus.PAUSED, SessionStatus.EXPIRED, SessionStatus.COMPLETED],
    SessionStatus.PAUSED: [SessionStatus.ACTIVE, SessionStatus.EXPIRED, SessionStatus.COMPLETED],
    SessionStatus.EXPIRED: [],
    SessionStatus.COMPLETED: [],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_status: SessionStatus, to_status: SessionStatus):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid transition: {from_status.value} -> {to_status.value}")


def can_transition(from_status: SessionStatus, to_status: SessionStatus) -> bool:
    """Check if an administrative transition is allowed."""
    allowed = VALID_TRANSITIONS.get(from_status, [])
    return to_status in allowed


def transition(from_status: SessionStatus, to_status: SessionStatus) -> SessionStatus:
    """Perform transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_status, to_status):
        raise InvalidTransitionError(from_status, to_status)
    return to_status


def pause(current: SessionStatus) -> SessionStatus:
    return transition(current, SessionStatus.PAUSED)


def resume(current: SessionStatus) -> SessionStatus:
    return transition(current, SessionStatus.ACTIVE)


def expire(current: SessionStatus) -> SessionStatus:
    """Expire a session; expiring an already expired session is a no-op."""
    if current == SessionStatus.EXPIRED:
        return current
    return transition(current, SessionStatus.EXPIRED)


def complete(current: SessionStatus) -> SessionStatus:
    return transition(current, SessionStatus.COMPLETED)
