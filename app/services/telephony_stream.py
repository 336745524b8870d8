"""
Telephony side of a call: the media WebSocket opened by the provider.

TelephonyStream wraps one FastAPI WebSocket and gives it the same duplex
shape as the upstream session handle, so the relay can treat both sides alike.
"""

import logging
from typing import AsyncIterator, Optional, Union

from fastapi import WebSocket
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from app.config.constants import LOGGER_NAME
from app.errors import ConnectionClosed

logger = logging.getLogger(LOGGER_NAME)

Frame = Union[str, bytes]


class TelephonyStream:
    """One inbound media stream connection."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._closed = False

    @property
    def peer(self) -> Optional[str]:
        """Remote address of the telephony provider, for logs."""
        client = self.websocket.client
        if client is None:
            return None
        return f"{client.host}:{client.port}"

    @property
    def closed(self) -> bool:
        return self._closed

    async def accept(self) -> None:
        """Complete the WebSocket upgrade."""
        await self.websocket.accept()
        logger.info(f"Telephony stream accepted from {self.peer}")

    async def receive(self) -> Frame:
        """
        Wait for the next frame from the provider.

        Raises:
            ConnectionClosed: When the provider hangs up or the stream is closed
        """
        if self._closed:
            raise ConnectionClosed("Telephony stream is closed")

        message = await self.websocket.receive()
        if message["type"] == "websocket.disconnect":
            self._closed = True
            raise ConnectionClosed(f"Telephony stream disconnected (code {message.get('code')})")

        if message.get("text") is not None:
            return message["text"]
        return message["bytes"]

    async def __aiter__(self) -> AsyncIterator[Frame]:
        while True:
            try:
                frame = await self.receive()
            except ConnectionClosed:
                return
            yield frame

    async def send(self, frame: Frame) -> None:
        """
        Send one frame to the provider, text as text and bytes as binary.

        Raises:
            ConnectionClosed: If the stream is already closed
        """
        if self._closed:
            raise ConnectionClosed("Telephony stream is closed")
        try:
            if isinstance(frame, bytes):
                await self.websocket.send_bytes(frame)
            else:
                await self.websocket.send_text(frame)
        except (WebSocketDisconnect, RuntimeError) as e:
            self._closed = True
            raise ConnectionClosed(f"Telephony stream closed during send: {e}") from e

    async def close(self) -> None:
        """Close the stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if (
            self.websocket.application_state == WebSocketState.DISCONNECTED
            or self.websocket.client_state == WebSocketState.DISCONNECTED
        ):
            return
        try:
            await self.websocket.close()
            logger.info(f"Telephony stream from {self.peer} closed")
        except (RuntimeError, OSError) as e:
            logger.debug(f"Telephony stream already closed: {e}")
