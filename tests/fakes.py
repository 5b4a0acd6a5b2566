import asyncio
from collections.abc import AsyncIterator

import numpy as np

from domain.encoder import AudioPayload, SAMPLE_RATE
from domain.events import FragmentReceived, StreamClosed, StreamEvent, StreamFailed, TurnCompleted
from domain.state import SessionStatus
from domain.turns import Turn

BLOCK_SIZE = 256


async def settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def sine_block(frequency: float = 440.0, amplitude: float = 0.5, size: int = BLOCK_SIZE) -> np.ndarray:
    t = np.arange(size) / SAMPLE_RATE
    return (np.sin(2 * np.pi * frequency * t) * amplitude).astype(np.float32)


class FakeCapture:
    def __init__(
        self,
        start_error: Exception | None = None,
        stop_error: Exception | None = None,
    ) -> None:
        self.start_error = start_error
        self.stop_error = stop_error
        self.start_gate: asyncio.Event | None = None
        self.started = False
        self.stopped = False
        self.stop_calls = 0
        self._blocks: asyncio.Queue[np.ndarray | Exception | None] = asyncio.Queue()

    @property
    def sample_rate(self) -> int:
        return SAMPLE_RATE

    @property
    def block_size(self) -> int:
        return BLOCK_SIZE

    async def start(self) -> None:
        if self.start_gate is not None:
            await self.start_gate.wait()
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def stop(self) -> None:
        self.stop_calls += 1
        self.stopped = True
        self._blocks.put_nowait(None)
        if self.stop_error is not None:
            raise self.stop_error

    async def read_blocks(self) -> AsyncIterator[np.ndarray]:
        while True:
            block = await self._blocks.get()
            if block is None:
                return
            if isinstance(block, Exception):
                raise block
            yield block

    def break_stream(self, error: Exception) -> None:
        self._blocks.put_nowait(error)

    def feed(self, *blocks: np.ndarray) -> None:
        for block in blocks:
            self._blocks.put_nowait(block)


class FakeTransport:
    def __init__(
        self,
        open_error: Exception | None = None,
        close_error: Exception | None = None,
    ) -> None:
        self.open_error = open_error
        self.close_error = close_error
        self.open_gate: asyncio.Event | None = None
        self.source_language = ""
        self.opened = False
        self.closed = False
        self.close_calls = 0
        self.sent: list[AudioPayload] = []
        self._events: asyncio.Queue[StreamEvent | None] = asyncio.Queue()

    async def open(self) -> None:
        if self.open_gate is not None:
            await self.open_gate.wait()
        if self.open_error is not None:
            raise self.open_error
        self.opened = True

    async def send(self, payload: AudioPayload) -> None:
        self.sent.append(payload)

    async def events(self) -> AsyncIterator[StreamEvent]:
        while True:
            event = await self._events.get()
            if event is None:
                return
            yield event

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True
        self._events.put_nowait(None)
        if self.close_error is not None:
            raise self.close_error

    def emit(self, event: StreamEvent) -> None:
        self._events.put_nowait(event)

    def fragment(self, text: str) -> None:
        self.emit(FragmentReceived(text=text))

    def turn_complete(self) -> None:
        self.emit(TurnCompleted())

    def fail(self, detail: str) -> None:
        self.emit(StreamFailed(detail=detail))

    def server_close(self, reason: str = "") -> None:
        self.emit(StreamClosed(reason=reason))

    def end(self) -> None:
        self._events.put_nowait(None)


class FakeTranslator:
    """Answers immediately with ``responses`` unless ``manual`` is set, in
    which case each request waits for ``resolve``/``fail``."""

    def __init__(self, responses: dict[str, str] | None = None, manual: bool = False) -> None:
        self.responses = responses or {}
        self.manual = manual
        self.calls: list[tuple[str, str, str]] = []
        self._pending: dict[str, asyncio.Future] = {}

    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        self.calls.append((text, source_language, target_language))
        if not self.manual:
            return self.responses.get(text, f"<{text}>")
        future = asyncio.get_running_loop().create_future()
        self._pending[text] = future
        return await future

    def resolve(self, text: str, translation: str) -> None:
        self._pending.pop(text).set_result(translation)

    def fail(self, text: str, error: Exception) -> None:
        self._pending.pop(text).set_exception(error)

    @property
    def pending(self) -> list[str]:
        return list(self._pending)


class FailingTranslator:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error or RuntimeError("service unavailable")
        self.calls = 0

    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        self.calls += 1
        raise self.error


class RecordingObserver:
    def __init__(self) -> None:
        self.statuses: list[tuple[SessionStatus, str]] = []
        self.current_turns: list[Turn | None] = []
        self.histories: list[tuple[Turn, ...]] = []

    def on_status(self, status: SessionStatus, message: str) -> None:
        self.statuses.append((status, message))

    def on_current_turn(self, turn: Turn | None) -> None:
        self.current_turns.append(turn)

    def on_history(self, history: tuple[Turn, ...]) -> None:
        self.histories.append(history)

    @property
    def status_sequence(self) -> list[SessionStatus]:
        return [status for status, _ in self.statuses]


async def wait_until(predicate, rounds: int = 200) -> None:
    for _ in range(rounds):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")
