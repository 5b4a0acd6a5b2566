import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import AsyncExitStack

from domain.encoder import AudioPayload
from domain.events import FragmentReceived, StreamClosed, StreamFailed, TurnCompleted
from domain.state import SessionToken
from ports.audio import AudioCapturePort
from ports.transcriber import TranscriptionTransportPort

logger = logging.getLogger(__name__)


class CaptureSession:
    """One recording session: a microphone, a streaming connection and the
    audio pump linking them.

    All three share one lifetime. ``start`` releases whatever it acquired if a
    later step fails. ``stop`` cancels a setup still in progress and returns
    only once everything acquired so far is released, attempting every
    release step even when one of them raises.
    """

    def __init__(
        self,
        capture: AudioCapturePort,
        transport: TranscriptionTransportPort,
        token: SessionToken,
        on_fragment: Callable[[str], object],
        on_turn_complete: Callable[[], object],
        on_error: Callable[[str], object],
    ) -> None:
        self._capture = capture
        self._transport = transport
        self._token = token
        self._on_fragment = on_fragment
        self._on_turn_complete = on_turn_complete
        self._on_error = on_error

        self._teardown: AsyncExitStack | None = None
        self._setup_task: asyncio.Task | None = None
        self._pump_task: asyncio.Task | None = None
        self._listener_task: asyncio.Task | None = None
        self._started = False
        self._open = False
        self._closed = False

    @property
    def token(self) -> SessionToken:
        return self._token

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def start(self) -> None:
        if self._started or self._closed:
            return
        self._started = True

        self._setup_task = asyncio.create_task(self._setup(), name=f"setup-{self._token.sequence}")
        try:
            await self._setup_task
        except asyncio.CancelledError:
            if not self._closed or asyncio.current_task().cancelling():
                raise
            logger.info("Session %r stopped during setup", self._token)

    async def _setup(self) -> None:
        async with AsyncExitStack() as stack:
            await self._capture.start()
            stack.push_async_callback(self._release, "microphone", self._capture.stop)
            if self._closed:
                logger.info("Session %r stopped while opening microphone", self._token)
                return

            await self._transport.open()
            stack.push_async_callback(self._release, "transport", self._transport.close)
            if self._closed:
                logger.info("Session %r stopped while connecting", self._token)
                return

            self._listener_task = asyncio.create_task(self._listen(), name=f"listen-{self._token.sequence}")
            self._pump_task = asyncio.create_task(self._pump_audio(), name=f"pump-{self._token.sequence}")
            stack.push_async_callback(self._cancel_tasks)

            self._teardown = stack.pop_all()
            self._open = True

        logger.info("Session %r streaming", self._token)

    async def stop(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._open = False

        setup = self._setup_task
        if setup is not None and not setup.done():
            setup.cancel()
            await asyncio.wait({setup})

        teardown, self._teardown = self._teardown, None
        if teardown is not None:
            await teardown.aclose()
        logger.info("Session %r closed", self._token)

    async def _release(self, name: str, release: Callable[[], Awaitable[None]]) -> None:
        try:
            await release()
        except Exception:
            logger.exception("Failed to release %s", name)

    async def _cancel_tasks(self) -> None:
        current = asyncio.current_task()
        tasks = [
            task
            for task in (self._pump_task, self._listener_task)
            if task is not None and task is not current and not task.done()
        ]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._pump_task = None
        self._listener_task = None

    async def _pump_audio(self) -> None:
        try:
            async for block in self._capture.read_blocks():
                if self._closed:
                    break
                payload = AudioPayload.from_samples(block)
                try:
                    await self._transport.send(payload)
                except Exception:
                    logger.warning("Failed to send audio block (%d samples)", payload.sample_count)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not self._closed:
                logger.exception("Microphone stream failed")
                self._on_error(f"microphone stream failed: {exc}")

    async def _listen(self) -> None:
        try:
            async for event in self._transport.events():
                if self._closed:
                    return
                if isinstance(event, FragmentReceived):
                    if event.text:
                        self._on_fragment(event.text)
                elif isinstance(event, TurnCompleted):
                    self._on_turn_complete()
                elif isinstance(event, StreamFailed):
                    self._on_error(event.detail or "unknown error")
                    return
                elif isinstance(event, StreamClosed):
                    self._on_error(f"connection closed ({event.reason or 'no reason given'})")
                    return
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if not self._closed:
                logger.exception("Transcription stream failed")
                self._on_error(str(exc) or type(exc).__name__)
            return

        if not self._closed:
            self._on_error("connection closed by server")
