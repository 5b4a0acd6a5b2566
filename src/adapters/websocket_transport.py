import json
import logging
from collections.abc import AsyncIterator

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from domain.encoder import AudioPayload
from domain.errors import ConnectionFailedError
from domain.events import FragmentReceived, StreamClosed, StreamEvent, StreamFailed, TurnCompleted

logger = logging.getLogger(__name__)


def parse_message(raw: str | bytes) -> list[StreamEvent]:
    """Map one inbound JSON message onto stream events.

    Messages are ``{"fragment": str}``, ``{"turnComplete": true}`` or
    ``{"error": details}``. A message carrying both a fragment and a turn
    boundary yields the fragment first. Unknown shapes yield nothing.
    """
    try:
        message = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Ignoring non-JSON message from transcription server")
        return []
    if not isinstance(message, dict):
        return []

    if "error" in message:
        detail = message["error"]
        return [StreamFailed(detail=detail if isinstance(detail, str) else json.dumps(detail))]

    events: list[StreamEvent] = []
    if isinstance(message.get("fragment"), str):
        events.append(FragmentReceived(text=message["fragment"]))
    if message.get("turnComplete") is True:
        events.append(TurnCompleted())
    return events


class WebSocketTranscriptionTransport:
    def __init__(
        self,
        url: str,
        api_key: str = "",
        source_language: str = "",
        open_timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._source_language = source_language
        self._open_timeout = open_timeout
        self._connection: ClientConnection | None = None

    async def open(self) -> None:
        headers = {}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        if self._source_language:
            headers["X-Source-Language"] = self._source_language

        try:
            self._connection = await connect(
                self._url,
                additional_headers=headers,
                open_timeout=self._open_timeout,
            )
        except (OSError, TimeoutError, InvalidHandshake, InvalidURI) as exc:
            raise ConnectionFailedError(f"Cannot reach transcription server at {self._url}: {exc}") from exc
        logger.info("Transcription stream connected to %s", self._url)

    async def send(self, payload: AudioPayload) -> None:
        if self._connection is None:
            return
        try:
            await self._connection.send(json.dumps(payload.to_message()))
        except ConnectionClosed:
            logger.debug("Audio block dropped, connection closed")

    async def events(self) -> AsyncIterator[StreamEvent]:
        connection = self._connection
        if connection is None:
            return
        try:
            async for raw in connection:
                for event in parse_message(raw):
                    yield event
        except ConnectionClosed as exc:
            yield StreamFailed(detail=f"connection lost ({exc})")
            return
        yield StreamClosed(reason=connection.close_reason or "server closed the stream")

    async def close(self) -> None:
        connection, self._connection = self._connection, None
        if connection is not None:
            await connection.close()
            logger.info("Transcription stream closed")
