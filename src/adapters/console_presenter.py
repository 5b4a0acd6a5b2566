import sys
from typing import TextIO

from domain.state import SessionStatus
from domain.turns import Turn
from log_format import BOLD, CYAN, DIM, GREEN, RED, RESET, YELLOW

STATUS_TEXT = {
    SessionStatus.IDLE: (DIM, "Ready to translate"),
    SessionStatus.CONNECTING: (YELLOW, "Connecting to mic..."),
    SessionStatus.LISTENING: (GREEN, "Listening..."),
    SessionStatus.ERROR: (RED, "Error"),
}


class ConsolePresenter:
    """Prints the transcript as it grows: each finalized turn once, then its
    translation once it arrives."""

    def __init__(self, stream: TextIO | None = None, color: bool = True) -> None:
        self._stream = stream or sys.stdout
        self._color = color
        self._shown_originals: set[str] = set()
        self._shown_translations: set[str] = set()
        self._live_text = ""

    def on_status(self, status: SessionStatus, message: str) -> None:
        color, text = STATUS_TEXT[status]
        line = f"{text}: {message}" if message else text
        if status is SessionStatus.CONNECTING:
            self._shown_originals.clear()
            self._shown_translations.clear()
        self._write(f"[{status.value}] {line}", color)

    def on_current_turn(self, turn: Turn | None) -> None:
        text = turn.original if turn is not None else ""
        if text and text != self._live_text:
            self._write(f"  ... {text}", DIM)
        self._live_text = text

    def on_history(self, history: tuple[Turn, ...]) -> None:
        for turn in history:
            if turn.id not in self._shown_originals:
                self._shown_originals.add(turn.id)
                self._write(f"Original:    {turn.original}", BOLD + CYAN)
            if turn.translation_resolved and turn.id not in self._shown_translations:
                self._shown_translations.add(turn.id)
                self._write(f"Translation: {turn.translated or '...'}", GREEN)

    def _write(self, text: str, color: str = "") -> None:
        if self._color and color:
            text = f"{color}{text}{RESET}"
        self._stream.write(text + "\n")
        self._stream.flush()
