import asyncio
import logging
from collections.abc import AsyncIterator

from deepgram import AsyncDeepgramClient
from deepgram.extensions.types.sockets.listen_v1_results_event import ListenV1ResultsEvent
from deepgram.listen.v1.socket_client import EventType

from domain.encoder import AudioPayload
from domain.errors import ConnectionFailedError
from domain.events import FragmentReceived, StreamClosed, StreamEvent, StreamFailed, TurnCompleted

logger = logging.getLogger(__name__)


class DeepgramTranscriptionTransport:
    """Deepgram live transcription as a fragment/turn-boundary stream.

    Only final results become fragments, so fragments never need to be
    replaced. ``speech_final`` and ``UtteranceEnd`` messages close the turn.
    """

    def __init__(
        self,
        api_key: str,
        source_language: str = "multi",
        model: str = "nova-2",
        sample_rate: int = 16000,
        utterance_end_ms: int = 1500,
        endpointing_ms: int = 300,
    ) -> None:
        self._api_key = api_key
        self._source_language = source_language
        self._model = model
        self._sample_rate = sample_rate
        self._utterance_end_ms = utterance_end_ms
        self._endpointing_ms = endpointing_ms
        self._socket = None
        self._context_manager = None
        self._event_queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue()
        self._listener_task: asyncio.Task | None = None
        self._turn_has_text = False

    async def open(self) -> None:
        client = AsyncDeepgramClient(api_key=self._api_key)
        self._context_manager = client.listen.v1.connect(
            model=self._model,
            language=self._source_language,
            encoding="linear16",
            sample_rate=str(self._sample_rate),
            channels="1",
            interim_results="true",
            utterance_end_ms=str(self._utterance_end_ms),
            vad_events="true",
            endpointing=str(self._endpointing_ms),
            smart_format="true",
        )
        try:
            self._socket = await self._context_manager.__aenter__()
        except Exception as exc:
            self._context_manager = None
            raise ConnectionFailedError(f"Cannot connect to Deepgram: {exc}") from exc

        self._socket.on(EventType.MESSAGE, self._on_message)
        self._socket.on(EventType.ERROR, self._on_error)
        self._socket.on(EventType.CLOSE, self._on_close)
        self._listener_task = asyncio.create_task(self._socket.start_listening())
        logger.info("Deepgram session started (language=%s)", self._source_language)

    async def send(self, payload: AudioPayload) -> None:
        if self._socket is None:
            return
        try:
            await self._socket.send_media(payload.pcm)
        except Exception:
            logger.warning("Failed to send audio to Deepgram")

    async def events(self) -> AsyncIterator[StreamEvent]:
        while True:
            event = await self._event_queue.get()
            if event is None:
                return
            yield event
            if isinstance(event, (StreamFailed, StreamClosed)):
                return

    async def close(self) -> None:
        if self._listener_task and not self._listener_task.done():
            self._listener_task.cancel()
            try:
                await self._listener_task
            except (asyncio.CancelledError, Exception):
                pass
        self._listener_task = None

        if self._context_manager:
            try:
                await self._context_manager.__aexit__(None, None, None)
            except Exception:
                logger.warning("Error while closing Deepgram socket", exc_info=True)
        self._context_manager = None
        self._socket = None
        self._event_queue.put_nowait(None)
        logger.info("Deepgram session closed")

    async def _on_message(self, message) -> None:
        if getattr(message, "type", None) == "UtteranceEnd":
            self._complete_turn()
            return
        if not isinstance(message, ListenV1ResultsEvent):
            return
        try:
            transcript = message.channel.alternatives[0].transcript
        except (IndexError, AttributeError):
            return

        if message.is_final and transcript:
            text = f" {transcript}" if self._turn_has_text else transcript
            self._turn_has_text = True
            await self._event_queue.put(FragmentReceived(text=text))
        if message.speech_final:
            self._complete_turn()

    async def _on_error(self, error) -> None:
        logger.error("Deepgram error: %s", error)
        await self._event_queue.put(StreamFailed(detail=str(error)))

    async def _on_close(self, _) -> None:
        await self._event_queue.put(StreamClosed(reason="Deepgram closed the connection"))

    def _complete_turn(self) -> None:
        if not self._turn_has_text:
            return
        self._turn_has_text = False
        self._event_queue.put_nowait(TurnCompleted())
