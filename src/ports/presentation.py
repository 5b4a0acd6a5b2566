from typing import Protocol

from domain.state import SessionStatus
from domain.turns import Turn


class SessionObserver(Protocol):
    def on_status(self, status: SessionStatus, message: str) -> None: ...
    def on_current_turn(self, turn: Turn | None) -> None: ...
    def on_history(self, history: tuple[Turn, ...]) -> None: ...
