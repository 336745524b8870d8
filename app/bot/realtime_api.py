import asyncio
import json
import logging
import time
from typing import AsyncIterator, Union

import websockets
from pydantic import ValidationError
from websockets import exceptions as ws_exceptions

from app.config.constants import (
    CLOSE_TIMEOUT,
    DEFAULT_REALTIME_URL,
    DEFAULT_UPSTREAM_CONNECT_TIMEOUT,
    EVENT_ERROR,
    EVENT_SESSION_CREATED,
    LOGGER_NAME,
    WS_MAX_QUEUE,
    WS_MAX_SIZE,
    WS_PING_INTERVAL,
    WS_PING_TIMEOUT,
)
from app.errors import (
    ConnectionClosed,
    TransportFailure,
    UpstreamConfigInvalid,
    UpstreamUnavailable,
)
from app.models.realtime_schemas import (
    RealtimeBaseMessage,
    RealtimeErrorMessage,
    RealtimeSessionConfig,
    ResponseCreateCommand,
    ResponseOptions,
    SessionCreatedEvent,
    SessionOptions,
    SessionUpdateCommand,
)

logger = logging.getLogger(LOGGER_NAME)

Frame = Union[str, bytes]

# Handshake statuses that mean the request itself was wrong, not the provider
CONFIG_REJECTED_STATUSES = {400, 404, 422}


class RealtimeSessionHandle:
    """
    One open realtime conversation with the provider.

    Frames passed to send() go out untouched, and receive() hands back exactly
    what the server sent, text or binary.
    """

    def __init__(self, ws, session_id: str, config: RealtimeSessionConfig):
        self.ws = ws
        self.session_id = session_id
        self.model = config.model
        self.voice = config.voice
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, frame: Frame) -> None:
        """
        Send one frame to the provider.

        Raises:
            ConnectionClosed: If the handle or the underlying socket is closed
            TransportFailure: On any other I/O error
        """
        if self._closed:
            raise ConnectionClosed(f"Upstream session {self.session_id} is closed")
        try:
            await self.ws.send(frame)
        except ws_exceptions.ConnectionClosed as e:
            raise ConnectionClosed(f"Upstream session {self.session_id} closed during send") from e
        except OSError as e:
            raise TransportFailure(f"Upstream send failed: {e}") from e

    async def send_command(self, command: RealtimeBaseMessage) -> None:
        """Serialize and send a control command."""
        await self.send(command.model_dump_json(exclude_none=True))

    async def create_response(self, instructions: str) -> None:
        """Ask the model to respond with the given instructions."""
        logger.debug(f"Requesting response for upstream session {self.session_id}")
        await self.send_command(ResponseCreateCommand(response=ResponseOptions(instructions=instructions)))

    async def receive(self) -> Frame:
        """
        Wait for the next frame from the provider.

        Raises:
            ConnectionClosed: When the connection is closed, normally or not
        """
        if self._closed:
            raise ConnectionClosed(f"Upstream session {self.session_id} is closed")
        try:
            return await self.ws.recv()
        except ws_exceptions.ConnectionClosedOK as e:
            raise ConnectionClosed(f"Upstream session {self.session_id} closed") from e
        except ws_exceptions.ConnectionClosedError as e:
            logger.warning(f"Upstream session {self.session_id} closed unexpectedly: {e}")
            raise ConnectionClosed(f"Upstream session {self.session_id} closed: {e}") from e

    async def __aiter__(self) -> AsyncIterator[Frame]:
        while True:
            try:
                frame = await self.receive()
            except ConnectionClosed:
                return
            yield frame

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        logger.info(f"Closing upstream session {self.session_id}")
        try:
            await asyncio.wait_for(self.ws.close(), timeout=CLOSE_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"Timed out closing upstream session {self.session_id}")
        except OSError as e:
            logger.warning(f"Error closing upstream session {self.session_id}: {e}")


class RealtimeSessionClient:
    """
    Opens realtime sessions against the OpenAI Realtime API.

    One client is built at startup and shared by every call; it holds no
    per-call state, each open() returns an independent handle.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_REALTIME_URL,
        connect_timeout: float = DEFAULT_UPSTREAM_CONNECT_TIMEOUT,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.connect_timeout = connect_timeout
        logger.info(f"RealtimeSessionClient initialized for {base_url}")

    async def open(self, config: Union[RealtimeSessionConfig, dict]) -> RealtimeSessionHandle:
        """
        Open a realtime session and send the greeting if one is configured.

        Args:
            config: Model, optional voice and optional greeting instructions

        Returns:
            RealtimeSessionHandle: The open session

        Raises:
            UpstreamUnavailable: Provider unreachable, timed out or refused us
            UpstreamConfigInvalid: Provider rejected the configuration
        """
        if not isinstance(config, RealtimeSessionConfig):
            try:
                config = RealtimeSessionConfig.model_validate(config)
            except ValidationError as e:
                raise UpstreamConfigInvalid(f"Invalid session configuration: {e}") from e

        ws = await self._connect(config.model)
        try:
            session_id = await self._await_session_created(ws)
            handle = RealtimeSessionHandle(ws, session_id, config)
            await self._initialize(handle, config)
        except BaseException:
            await self._discard(ws)
            raise

        logger.info(f"Opened upstream session {session_id} with model: {config.model}")
        return handle

    async def _connect(self, model: str):
        url = f"{self.base_url}?model={model}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": "realtime=v1",
        }

        logger.info(f"Connecting to OpenAI Realtime API with model: {model}")
        connection_start = time.time()
        try:
            ws = await asyncio.wait_for(
                websockets.connect(
                    url,
                    max_size=WS_MAX_SIZE,
                    max_queue=WS_MAX_QUEUE,
                    ping_interval=WS_PING_INTERVAL,
                    ping_timeout=WS_PING_TIMEOUT,
                    compression=None,  # Disable compression for lower latency
                    additional_headers=headers,
                ),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            raise UpstreamUnavailable(
                f"Timeout while connecting to OpenAI Realtime API (after {self.connect_timeout}s)"
            ) from e
        except ws_exceptions.InvalidStatus as e:
            status = e.response.status_code
            if status in CONFIG_REJECTED_STATUSES:
                raise UpstreamConfigInvalid(f"OpenAI rejected the session request (HTTP {status})") from e
            raise UpstreamUnavailable(f"OpenAI refused the connection (HTTP {status})") from e
        except (ws_exceptions.InvalidHandshake, ws_exceptions.InvalidURI, OSError) as e:
            raise UpstreamUnavailable(f"Failed to connect to OpenAI Realtime API: {e}") from e

        logger.debug(f"WebSocket connection established in {time.time() - connection_start:.2f} seconds")
        return ws

    async def _await_session_created(self, ws) -> str:
        """Consume handshake events until session.created and return the session id."""
        try:
            return await asyncio.wait_for(self._read_session_created(ws), timeout=self.connect_timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamUnavailable("Timed out waiting for session.created") from e
        except ws_exceptions.ConnectionClosed as e:
            raise UpstreamUnavailable(f"Connection closed during session handshake: {e}") from e

    async def _read_session_created(self, ws) -> str:
        while True:
            message = await ws.recv()
            if isinstance(message, bytes):
                logger.debug("Ignoring binary message during session handshake")
                continue
            try:
                data = json.loads(message)
            except json.JSONDecodeError as e:
                raise UpstreamUnavailable(f"Received invalid JSON during handshake: {message[:100]}") from e
            if not isinstance(data, dict):
                raise UpstreamUnavailable(f"Unexpected handshake message: {message[:100]}")

            event_type = data.get("type")
            if event_type == EVENT_ERROR:
                try:
                    error = RealtimeErrorMessage.model_validate(data).error
                except ValidationError as e:
                    raise UpstreamConfigInvalid(f"Session rejected by provider: {message[:100]}") from e
                logger.error(f"OpenAI rejected the session: {error.message}")
                raise UpstreamConfigInvalid(error.message or "Session rejected by provider")
            if event_type == EVENT_SESSION_CREATED:
                try:
                    return SessionCreatedEvent.model_validate(data).session.id
                except ValidationError as e:
                    raise UpstreamUnavailable(f"Malformed session.created event: {e}") from e
            logger.debug(f"Ignoring handshake message of type: {event_type}")

    async def _initialize(self, handle: RealtimeSessionHandle, config: RealtimeSessionConfig) -> None:
        """Apply session options, then send the one-shot greeting."""
        try:
            if config.voice:
                await handle.send_command(SessionUpdateCommand(session=SessionOptions(voice=config.voice)))
            if config.instructions:
                await handle.create_response(config.instructions)
        except (ConnectionClosed, TransportFailure) as e:
            raise UpstreamUnavailable(f"Connection lost while initializing session: {e}") from e

    async def _discard(self, ws) -> None:
        try:
            await asyncio.wait_for(ws.close(), timeout=CLOSE_TIMEOUT)
        except (asyncio.TimeoutError, OSError) as e:
            logger.debug(f"Error discarding upstream socket: {e}")
