"""
Unit tests for the OpenAI Realtime session client.

These tests verify session establishment, the greeting sent on open, error
mapping during the handshake, and the behaviour of an open session handle.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK, InvalidStatus

from app.bot.realtime_api import RealtimeSessionClient, RealtimeSessionHandle
from app.errors import ConnectionClosed, TransportFailure, UpstreamConfigInvalid, UpstreamUnavailable
from app.models.realtime_schemas import RealtimeSessionConfig


def session_created(session_id="sess_123"):
    return json.dumps({
        "type": "session.created",
        "session": {"id": session_id, "model": "gpt-4o-realtime-test", "voice": "alloy"},
    })


def sent_messages(mock_ws):
    return [json.loads(call.args[0]) for call in mock_ws.send.await_args_list]


@pytest.fixture
def mock_ws():
    ws = AsyncMock()
    ws.recv.side_effect = [session_created()]
    return ws


@pytest.fixture
def realtime_client():
    """Create a RealtimeSessionClient instance for testing."""
    return RealtimeSessionClient("test-api-key", connect_timeout=1)


@pytest.mark.asyncio
async def test_open_sends_greeting(realtime_client, mock_ws):
    config = RealtimeSessionConfig(model="gpt-4o-realtime-test", instructions="Say hi")

    with patch("websockets.connect", AsyncMock(return_value=mock_ws)) as mock_connect:
        handle = await realtime_client.open(config)

    url = mock_connect.call_args.args[0]
    assert url == "wss://api.openai.com/v1/realtime?model=gpt-4o-realtime-test"
    headers = mock_connect.call_args.kwargs["additional_headers"]
    assert headers["Authorization"] == "Bearer test-api-key"
    assert headers["OpenAI-Beta"] == "realtime=v1"

    assert handle.session_id == "sess_123"
    assert handle.model == "gpt-4o-realtime-test"
    assert sent_messages(mock_ws) == [
        {"type": "response.create", "response": {"instructions": "Say hi"}}
    ]


@pytest.mark.asyncio
async def test_open_with_voice_updates_session_before_greeting(realtime_client, mock_ws):
    config = RealtimeSessionConfig(voice="alloy", instructions="Say hi")

    with patch("websockets.connect", AsyncMock(return_value=mock_ws)):
        handle = await realtime_client.open(config)

    assert handle.voice == "alloy"
    assert [m["type"] for m in sent_messages(mock_ws)] == ["session.update", "response.create"]
    assert sent_messages(mock_ws)[0]["session"] == {"voice": "alloy"}


@pytest.mark.asyncio
async def test_open_without_instructions_sends_nothing(realtime_client, mock_ws):
    with patch("websockets.connect", AsyncMock(return_value=mock_ws)):
        await realtime_client.open(RealtimeSessionConfig())

    mock_ws.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_open_skips_other_events_before_session_created(realtime_client, mock_ws):
    mock_ws.recv.side_effect = [json.dumps({"type": "rate_limits.updated"}), session_created("sess_9")]

    with patch("websockets.connect", AsyncMock(return_value=mock_ws)):
        handle = await realtime_client.open(RealtimeSessionConfig())

    assert handle.session_id == "sess_9"


@pytest.mark.asyncio
async def test_open_accepts_dict_config(realtime_client, mock_ws):
    with patch("websockets.connect", AsyncMock(return_value=mock_ws)):
        handle = await realtime_client.open({"model": "gpt-4o-realtime-test"})

    assert handle.model == "gpt-4o-realtime-test"


@pytest.mark.asyncio
async def test_open_invalid_config_rejected_locally(realtime_client):
    with patch("websockets.connect") as mock_connect:
        with pytest.raises(UpstreamConfigInvalid):
            await realtime_client.open({"model": "  "})

    mock_connect.assert_not_called()


@pytest.mark.asyncio
async def test_open_connection_refused(realtime_client):
    with patch("websockets.connect", AsyncMock(side_effect=OSError("Connection refused"))):
        with pytest.raises(UpstreamUnavailable):
            await realtime_client.open(RealtimeSessionConfig())


@pytest.mark.asyncio
async def test_open_timeout(realtime_client):
    with patch("websockets.connect", AsyncMock(side_effect=asyncio.TimeoutError())):
        with pytest.raises(UpstreamUnavailable, match="Timeout"):
            await realtime_client.open(RealtimeSessionConfig())


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, expected",
    [(401, UpstreamUnavailable), (403, UpstreamUnavailable), (503, UpstreamUnavailable),
     (400, UpstreamConfigInvalid), (404, UpstreamConfigInvalid)],
)
async def test_open_handshake_rejected(realtime_client, status, expected):
    error = InvalidStatus(MagicMock(status_code=status))

    with patch("websockets.connect", AsyncMock(side_effect=error)):
        with pytest.raises(expected, match=str(status)):
            await realtime_client.open(RealtimeSessionConfig())


@pytest.mark.asyncio
async def test_open_error_event_is_config_invalid(realtime_client, mock_ws):
    mock_ws.recv.side_effect = [json.dumps({
        "type": "error",
        "error": {"type": "invalid_request_error", "code": "invalid_model", "message": "Model not found"},
    })]

    with patch("websockets.connect", AsyncMock(return_value=mock_ws)):
        with pytest.raises(UpstreamConfigInvalid, match="Model not found"):
            await realtime_client.open(RealtimeSessionConfig())

    mock_ws.close.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "message, expected",
    [
        ({"type": "error", "error": {"message": None}}, UpstreamConfigInvalid),
        ({"type": "error", "error": "bad"}, UpstreamConfigInvalid),
        ({"type": "session.created", "session": {}}, UpstreamUnavailable),
        ({"type": "session.created"}, UpstreamUnavailable),
        (["not", "a", "dict"], UpstreamUnavailable),
        ("just a string", UpstreamUnavailable),
    ],
)
async def test_open_malformed_handshake_event(realtime_client, mock_ws, message, expected):
    mock_ws.recv.side_effect = [json.dumps(message)]

    with patch("websockets.connect", AsyncMock(return_value=mock_ws)):
        with pytest.raises(expected):
            await realtime_client.open(RealtimeSessionConfig())

    mock_ws.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_open_invalid_json_during_handshake(realtime_client, mock_ws):
    mock_ws.recv.side_effect = ["{not json"]

    with patch("websockets.connect", AsyncMock(return_value=mock_ws)):
        with pytest.raises(UpstreamUnavailable, match="invalid JSON"):
            await realtime_client.open(RealtimeSessionConfig())


@pytest.mark.asyncio
async def test_open_closed_during_handshake(realtime_client, mock_ws):
    mock_ws.recv.side_effect = ConnectionClosedError(None, None)

    with patch("websockets.connect", AsyncMock(return_value=mock_ws)):
        with pytest.raises(UpstreamUnavailable):
            await realtime_client.open(RealtimeSessionConfig())

    mock_ws.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_open_closed_while_greeting(realtime_client, mock_ws):
    mock_ws.send.side_effect = ConnectionClosedError(None, None)

    with patch("websockets.connect", AsyncMock(return_value=mock_ws)):
        with pytest.raises(UpstreamUnavailable):
            await realtime_client.open(RealtimeSessionConfig(instructions="Say hi"))

    mock_ws.close.assert_awaited_once()


@pytest.fixture
def handle():
    ws = AsyncMock()
    return RealtimeSessionHandle(ws, "sess_1", RealtimeSessionConfig())


@pytest.mark.asyncio
async def test_handle_send_passes_frames_through(handle):
    await handle.send(b"\x01\x02")
    await handle.send('{"type": "input_audio_buffer.append"}')

    assert [c.args[0] for c in handle.ws.send.await_args_list] == [
        b"\x01\x02", '{"type": "input_audio_buffer.append"}'
    ]


@pytest.mark.asyncio
async def test_handle_send_after_close(handle):
    await handle.close()

    with pytest.raises(ConnectionClosed):
        await handle.send(b"late")
    handle.ws.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_handle_send_peer_gone(handle):
    handle.ws.send.side_effect = ConnectionClosedOK(None, None)

    with pytest.raises(ConnectionClosed):
        await handle.send(b"frame")


@pytest.mark.asyncio
async def test_handle_send_io_error(handle):
    handle.ws.send.side_effect = OSError("broken pipe")

    with pytest.raises(TransportFailure):
        await handle.send(b"frame")


@pytest.mark.asyncio
async def test_handle_receive_and_iterate(handle):
    handle.ws.recv.side_effect = [b"audio", '{"type": "response.done"}', ConnectionClosedOK(None, None)]

    frames = [frame async for frame in handle]

    assert frames == [b"audio", '{"type": "response.done"}']


@pytest.mark.asyncio
async def test_handle_receive_abnormal_close(handle):
    handle.ws.recv.side_effect = ConnectionClosedError(None, None)

    with pytest.raises(ConnectionClosed):
        await handle.receive()


@pytest.mark.asyncio
async def test_handle_close_is_idempotent(handle):
    await handle.close()
    await handle.close()

    assert handle.closed
    handle.ws.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_handle_create_response(handle):
    await handle.create_response("Greet the caller")

    assert json.loads(handle.ws.send.await_args.args[0]) == {
        "type": "response.create",
        "response": {"instructions": "Greet the caller"},
    }
