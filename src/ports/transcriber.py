from collections.abc import AsyncIterator
from typing import Protocol

from domain.encoder import AudioPayload
from domain.events import StreamEvent


class TranscriptionTransportPort(Protocol):
    async def open(self) -> None: ...
    async def send(self, payload: AudioPayload) -> None: ...
    def events(self) -> AsyncIterator[StreamEvent]: ...
    async def close(self) -> None: ...
