import logging
import uuid
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace

from domain.errors import DuplicateTurnError, TranslationAlreadyResolvedError, TurnFinalizedError

logger = logging.getLogger(__name__)


def new_turn_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Turn:
    id: str = field(default_factory=new_turn_id)
    original: str = ""
    translated: str = ""
    is_final: bool = False
    translation_resolved: bool = False

    def append(self, text: str) -> None:
        if self.is_final:
            raise TurnFinalizedError(f"Turn {self.id} is final")
        self.original += text

    def finalize(self) -> None:
        self.is_final = True

    def resolve_translation(self, text: str) -> None:
        if self.translation_resolved:
            raise TranslationAlreadyResolvedError(f"Turn {self.id} already has a translation")
        self.translated = text
        self.translation_resolved = True

    def copy(self) -> "Turn":
        return replace(self)


class TranscriptHistory:
    """Append-only sequence of finalized turns, indexed by turn id."""

    def __init__(self) -> None:
        self._turns: list[Turn] = []
        self._by_id: dict[str, Turn] = {}

    def append(self, turn: Turn) -> None:
        if not turn.is_final:
            raise TurnFinalizedError(f"Turn {turn.id} must be final before entering history")
        if turn.id in self._by_id:
            raise DuplicateTurnError(f"Turn {turn.id} is already in history")
        self._turns.append(turn)
        self._by_id[turn.id] = turn

    def get(self, turn_id: str) -> Turn | None:
        return self._by_id.get(turn_id)

    def resolve_translation(self, turn_id: str, text: str) -> bool:
        turn = self._by_id.get(turn_id)
        if turn is None:
            logger.debug("Translation for unknown turn %s dropped", turn_id)
            return False
        turn.resolve_translation(text)
        return True

    def snapshot(self) -> tuple[Turn, ...]:
        return tuple(turn.copy() for turn in self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self._turns)

    def __getitem__(self, index: int) -> Turn:
        return self._turns[index]


class TurnAccumulator:
    def __init__(
        self,
        history: TranscriptHistory,
        on_finalized: Callable[[Turn], object] | None = None,
    ) -> None:
        self._history = history
        self._on_finalized = on_finalized
        self._current: Turn | None = None

    @property
    def current(self) -> Turn | None:
        return self._current

    @property
    def history(self) -> TranscriptHistory:
        return self._history

    def on_fragment(self, text: str) -> Turn:
        if self._current is None:
            self._current = Turn(original=text)
            logger.debug("Turn %s started", self._current.id)
        else:
            self._current.append(text)
        return self._current

    def on_turn_complete(self) -> Turn | None:
        return self._finalize_current()

    def on_forced_stop(self) -> Turn | None:
        turn = self._finalize_current()
        if turn is not None:
            logger.info("Turn %s finalized by stop", turn.id)
        return turn

    def _finalize_current(self) -> Turn | None:
        turn = self._current
        self._current = None
        if turn is None or not turn.original:
            return None

        turn.finalize()
        self._history.append(turn)
        logger.info("Turn finalized: %s", turn.original)
        if self._on_finalized is not None:
            self._on_finalized(turn)
        return turn
