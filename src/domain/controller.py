import asyncio
import logging
from collections.abc import Callable

from domain.capture_session import CaptureSession
from domain.errors import LanguageChangeRejectedError
from domain.languages import validate_language
from domain.state import ACTIVE_STATUSES, SessionStatus, SessionToken, validate_transition
from domain.translation import TranslationDispatcher
from domain.turns import TranscriptHistory, Turn, TurnAccumulator
from ports.audio import AudioCapturePort
from ports.presentation import SessionObserver
from ports.transcriber import TranscriptionTransportPort
from ports.translator import TranslatorPort

logger = logging.getLogger(__name__)

CaptureFactory = Callable[[], AudioCapturePort]
TransportFactory = Callable[[str], TranscriptionTransportPort]


class SessionController:
    def __init__(
        self,
        capture_factory: CaptureFactory,
        transport_factory: TransportFactory,
        translator: TranslatorPort | None,
        source_language: str = "es",
        target_language: str = "en",
        translation_timeout: float | None = 30.0,
        drain_timeout: float | None = 5.0,
    ) -> None:
        self._capture_factory = capture_factory
        self._transport_factory = transport_factory
        self._translator = translator
        self._source_language = validate_language(source_language)
        self._target_language = validate_language(target_language)
        self._translation_timeout = translation_timeout
        self._drain_timeout = drain_timeout

        self._status = SessionStatus.IDLE
        self._error_message = ""
        self._token: SessionToken | None = None
        self._session: CaptureSession | None = None
        self._history = TranscriptHistory()
        self._accumulator: TurnAccumulator | None = None
        self._dispatcher: TranslationDispatcher | None = None
        self._teardown_task: asyncio.Task | None = None
        self._observers: list[SessionObserver] = []

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def error_message(self) -> str:
        return self._error_message

    @property
    def is_active(self) -> bool:
        return self._status in ACTIVE_STATUSES

    @property
    def source_language(self) -> str:
        return self._source_language

    @property
    def target_language(self) -> str:
        return self._target_language

    @property
    def current_turn(self) -> Turn | None:
        if self._accumulator is None or self._accumulator.current is None:
            return None
        return self._accumulator.current.copy()

    @property
    def history(self) -> tuple[Turn, ...]:
        return self._history.snapshot()

    def add_observer(self, observer: SessionObserver) -> None:
        self._observers.append(observer)

    def remove_observer(self, observer: SessionObserver) -> None:
        self._observers.remove(observer)

    def set_languages(self, source_language: str, target_language: str) -> None:
        if self._status is not SessionStatus.IDLE:
            raise LanguageChangeRejectedError(
                f"Languages can only change while idle (status={self._status.value})"
            )
        source_language = validate_language(source_language)
        self._target_language = validate_language(target_language)
        self._source_language = source_language
        logger.info("Languages: %s -> %s", self._source_language, self._target_language)

    async def start(self) -> bool:
        if self.is_active or self._teardown_task is not None:
            logger.warning("Start ignored, session is %s", self._status.value)
            return False

        token = SessionToken()
        self._token = token
        self._error_message = ""
        self._history = TranscriptHistory()
        self._dispatcher = TranslationDispatcher(
            translator=self._translator,
            history=self._history,
            source_language=self._source_language,
            target_language=self._target_language,
            timeout=self._translation_timeout,
            on_translated=lambda _: self._publish_history(),
        )
        self._accumulator = TurnAccumulator(self._history, on_finalized=self._dispatcher.dispatch)
        self._transition_to(SessionStatus.CONNECTING)
        self._publish_current()
        self._publish_history()

        try:
            session = CaptureSession(
                capture=self._capture_factory(),
                transport=self._transport_factory(self._source_language),
                token=token,
                on_fragment=self._guarded(token, self._handle_fragment),
                on_turn_complete=self._guarded(token, self._handle_turn_complete),
                on_error=self._guarded(token, self._handle_stream_error),
            )
            self._session = session
            await session.start()
        except Exception as exc:
            if token is not self._token:
                logger.info("Setup of stopped session %r failed: %s", token, exc)
                return False
            logger.error("Failed to start session: %s", exc)
            await self._abort_setup(f"Failed to start: {exc}")
            return False

        if token is not self._token or not session.is_open:
            return False

        self._transition_to(SessionStatus.LISTENING)
        return True

    async def stop(self) -> None:
        if self._teardown_task is not None:
            await asyncio.shield(self._teardown_task)
        elif self.is_active:
            await asyncio.shield(self._begin_teardown(SessionStatus.IDLE))
        if self._status is SessionStatus.ERROR and self._teardown_task is None:
            self._error_message = ""
            self._transition_to(SessionStatus.IDLE)

    async def shutdown(self) -> None:
        if self.is_active or self._teardown_task is not None:
            logger.info("Shutting down active session")
            await self.stop()

    def _guarded(self, token: SessionToken, handler: Callable[..., None]) -> Callable[..., None]:
        def guarded(*args) -> None:
            if token is not self._token:
                logger.debug("Dropped callback from stale session %r", token)
                return
            handler(*args)

        return guarded

    def _handle_fragment(self, text: str) -> None:
        if self._accumulator is None:
            return
        self._accumulator.on_fragment(text)
        logger.debug("Fragment: %s", text)
        self._publish_current()

    def _handle_turn_complete(self) -> None:
        if self._accumulator is None:
            return
        turn = self._accumulator.on_turn_complete()
        self._publish_current()
        if turn is not None:
            self._publish_history()

    def _handle_stream_error(self, detail: str) -> None:
        logger.error("Transcription stream error: %s", detail)
        self._begin_teardown(SessionStatus.ERROR, f"Transcription stream error: {detail}")

    def _begin_teardown(self, final_status: SessionStatus, message: str = "") -> asyncio.Task:
        if self._teardown_task is None:
            self._token = None
            self._teardown_task = asyncio.create_task(
                self._teardown(final_status, message),
                name="session-teardown",
            )
        return self._teardown_task

    async def _teardown(self, final_status: SessionStatus, message: str) -> None:
        session, accumulator, dispatcher = self._session, self._accumulator, self._dispatcher
        try:
            if accumulator is not None and accumulator.on_forced_stop() is not None:
                self._publish_history()
            self._publish_current()
            if session is not None:
                await session.stop()
            if dispatcher is not None:
                await dispatcher.drain(self._drain_timeout)
                dispatcher.close()
        finally:
            self._session = None
            self._accumulator = None
            self._dispatcher = None
            self._teardown_task = None
            self._error_message = message
            self._transition_to(final_status)

    async def _abort_setup(self, message: str) -> None:
        session, dispatcher = self._session, self._dispatcher
        self._token = None
        self._session = None
        self._accumulator = None
        self._dispatcher = None
        if session is not None:
            await session.stop()
        if dispatcher is not None:
            dispatcher.close()
        self._error_message = message
        self._transition_to(SessionStatus.ERROR)

    def _transition_to(self, target: SessionStatus) -> None:
        validate_transition(self._status, target)
        logger.info("State: %s -> %s", self._status.name, target.name)
        self._status = target
        self._notify("on_status", target, self._error_message)

    def _publish_current(self) -> None:
        self._notify("on_current_turn", self.current_turn)

    def _publish_history(self) -> None:
        self._notify("on_history", self.history)

    def _notify(self, method: str, *args) -> None:
        for observer in list(self._observers):
            try:
                getattr(observer, method)(*args)
            except Exception:
                logger.exception("Observer %r failed in %s", observer, method)
