import itertools
from enum import Enum


class SessionStatus(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    LISTENING = "listening"
    ERROR = "error"


VALID_TRANSITIONS: dict[SessionStatus, set[SessionStatus]] = {
    SessionStatus.IDLE: {SessionStatus.CONNECTING},
    SessionStatus.CONNECTING: {SessionStatus.LISTENING, SessionStatus.ERROR, SessionStatus.IDLE},
    SessionStatus.LISTENING: {SessionStatus.ERROR, SessionStatus.IDLE},
    SessionStatus.ERROR: {SessionStatus.CONNECTING, SessionStatus.IDLE},
}

ACTIVE_STATUSES = frozenset({SessionStatus.CONNECTING, SessionStatus.LISTENING})


class InvalidTransitionError(Exception):
    pass


def validate_transition(current: SessionStatus, target: SessionStatus) -> None:
    if target not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Cannot transition from {current.name} to {target.name}")


class SessionToken:
    """Identity of one capture session.

    Tokens are compared with ``is``; two tokens are never equal even if a
    sequence number were reused.
    """

    _counter = itertools.count(1)

    __slots__ = ("sequence",)

    def __init__(self) -> None:
        self.sequence = next(self._counter)

    def __repr__(self) -> str:
        return f"SessionToken(#{self.sequence})"
