import asyncio
import logging
from collections.abc import Callable

from domain.turns import TranscriptHistory, Turn
from ports.translator import TranslatorPort

logger = logging.getLogger(__name__)

TRANSLATION_FAILED = "[Translation failed]"


class TranslationDispatcher:
    """Fires one translation request per finalized turn.

    Results are written back into the history by turn id, so requests may
    complete in any order. A failed or timed-out request leaves
    ``TRANSLATION_FAILED`` in the turn; nothing is retried.
    """

    def __init__(
        self,
        translator: TranslatorPort | None,
        history: TranscriptHistory,
        source_language: str,
        target_language: str,
        timeout: float | None = 30.0,
        on_translated: Callable[[Turn], object] | None = None,
    ) -> None:
        self._translator = translator
        self._history = history
        self._source_language = source_language
        self._target_language = target_language
        self._timeout = timeout
        self._on_translated = on_translated
        self._tasks: dict[str, asyncio.Task] = {}
        self._closed = False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def closed(self) -> bool:
        return self._closed

    def dispatch(self, turn: Turn) -> asyncio.Task | None:
        if self._closed:
            logger.debug("Dispatcher closed, turn %s not translated", turn.id)
            return None
        if turn.id in self._tasks:
            return self._tasks[turn.id]
        if turn.translation_resolved:
            return None

        if not turn.original or self._translator is None:
            self._apply(turn.id, "")
            return None

        task = asyncio.create_task(
            self._translate(turn.id, turn.original),
            name=f"translate-{turn.id}",
        )
        self._tasks[turn.id] = task
        task.add_done_callback(lambda _, turn_id=turn.id: self._tasks.pop(turn_id, None))
        logger.debug("Translation requested for turn %s", turn.id)
        return task

    async def drain(self, timeout: float | None = None) -> None:
        tasks = list(self._tasks.values())
        if not tasks:
            return

        _, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning("Abandoning %d pending translation(s)", len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    def close(self) -> None:
        self._closed = True
        for task in list(self._tasks.values()):
            task.cancel()

    async def _translate(self, turn_id: str, text: str) -> None:
        if self._translator is None:
            return
        try:
            translation = await asyncio.wait_for(
                self._translator.translate(text, self._source_language, self._target_language),
                timeout=self._timeout,
            )
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            logger.warning("Translation timed out for turn %s after %.1fs", turn_id, self._timeout)
            translation = TRANSLATION_FAILED
        except Exception:
            logger.exception("Translation failed for turn %s", turn_id)
            translation = TRANSLATION_FAILED

        self._apply(turn_id, translation)

    def _apply(self, turn_id: str, translation: str) -> None:
        if self._closed:
            logger.debug("Late translation for turn %s dropped", turn_id)
            return
        if not self._history.resolve_translation(turn_id, translation):
            return

        logger.info("Translation: %s", translation)
        turn = self._history.get(turn_id)
        if self._on_translated is not None and turn is not None:
            self._on_translated(turn)
