import json

import pytest
from websockets.asyncio.server import serve

from adapters.websocket_transport import WebSocketTranscriptionTransport, parse_message
from domain.encoder import AudioPayload
from domain.errors import ConnectionFailedError
from domain.events import FragmentReceived, StreamClosed, StreamFailed, TurnCompleted
from fakes import sine_block


def kinds(events):
    return [type(event) for event in events]


class TestParseMessage:
    def test_fragment(self):
        [event] = parse_message('{"fragment": "Hola"}')
        assert isinstance(event, FragmentReceived)
        assert event.text == "Hola"

    def test_turn_complete(self):
        assert kinds(parse_message('{"turnComplete": true}')) == [TurnCompleted]

    def test_fragment_before_boundary_in_one_message(self):
        events = parse_message('{"fragment": " mundo", "turnComplete": true}')
        assert kinds(events) == [FragmentReceived, TurnCompleted]
        assert events[0].text == " mundo"

    def test_error_string(self):
        [event] = parse_message('{"error": "quota exceeded"}')
        assert isinstance(event, StreamFailed)
        assert event.detail == "quota exceeded"

    def test_error_object_serialized(self):
        [event] = parse_message('{"error": {"code": 429}}')
        assert json.loads(event.detail) == {"code": 429}

    def test_turn_complete_false_ignored(self):
        assert parse_message('{"turnComplete": false}') == []

    def test_garbage_ignored(self):
        assert parse_message("not json") == []
        assert parse_message("[1, 2]") == []
        assert parse_message('{"other": 1}') == []


class TestWebSocketTranscriptionTransport:
    @pytest.mark.asyncio
    async def test_round_trip(self):
        received = []
        headers = {}

        async def handler(connection):
            headers["authorization"] = connection.request.headers.get("Authorization")
            headers["language"] = connection.request.headers.get("X-Source-Language")
            received.append(json.loads(await connection.recv()))
            await connection.send(json.dumps({"fragment": "Hola"}))
            await connection.send(json.dumps({"fragment": " mundo", "turnComplete": True}))
            await connection.close(reason="bye")

        async with serve(handler, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            transport = WebSocketTranscriptionTransport(
                url=f"ws://127.0.0.1:{port}",
                api_key="secret",
                source_language="es",
            )
            await transport.open()
            payload = AudioPayload.from_samples(sine_block())
            await transport.send(payload)

            events = [event async for event in transport.events()]
            await transport.close()

        assert received == [{"audioPayload": payload.data, "format": "pcm16@16kHz"}]
        assert headers["authorization"] == "Bearer secret"
        assert headers["language"] == "es"
        assert kinds(events) == [FragmentReceived, FragmentReceived, TurnCompleted, StreamClosed]
        assert [e.text for e in events[:2]] == ["Hola", " mundo"]
        assert events[-1].reason == "bye"

    @pytest.mark.asyncio
    async def test_server_error_message(self):
        async def handler(connection):
            await connection.send(json.dumps({"error": "bad audio"}))
            await connection.wait_closed()

        async with serve(handler, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            transport = WebSocketTranscriptionTransport(url=f"ws://127.0.0.1:{port}")
            await transport.open()

            events = transport.events()
            first = await anext(events)
            await events.aclose()
            await transport.close()

        assert isinstance(first, StreamFailed)
        assert first.detail == "bad audio"

    @pytest.mark.asyncio
    async def test_unreachable_server(self):
        async with serve(lambda connection: None, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
        transport = WebSocketTranscriptionTransport(url=f"ws://127.0.0.1:{port}", open_timeout=1.0)

        with pytest.raises(ConnectionFailedError):
            await transport.open()

    @pytest.mark.asyncio
    async def test_send_before_open_is_dropped(self):
        transport = WebSocketTranscriptionTransport(url="ws://127.0.0.1:1")
        await transport.send(AudioPayload.from_samples(sine_block()))
        assert [event async for event in transport.events()] == []
