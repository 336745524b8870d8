"""
Acceptor for telephony media stream connections.

The WebSocketManager is built once at startup with the upstream client and
session configuration injected. For every accepted media stream it creates a
CallRelaySession, keeps it in the SessionRegistry while it runs, and removes
it when the call is over.
"""

import logging

from fastapi import WebSocket

from app.bot.call_relay import CallRelaySession
from app.config.constants import LOGGER_NAME
from app.models.realtime_schemas import RealtimeSessionConfig
from app.models.session_registry import SessionRegistry
from app.services.telephony_stream import TelephonyStream

logger = logging.getLogger(LOGGER_NAME)


class WebSocketManager:
    """Accepts media streams and runs one relay session per call."""

    def __init__(self, upstream_client, session_config: RealtimeSessionConfig, registry: SessionRegistry = None):
        self.upstream_client = upstream_client
        self.session_config = session_config
        self.registry = registry if registry is not None else SessionRegistry()

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Handle a media stream connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        The call lasts until either side closes. Failures stay inside the
        session; nothing is raised back into the server.
        """
        telephony = TelephonyStream(websocket)
        await telephony.accept()

        session = CallRelaySession(telephony, self.upstream_client, self.session_config)
        self.registry.add(session)
        logger.info(
            f"Call session {session.session_id} created for {telephony.peer} "
            f"({self.registry.active_count} active)"
        )

        try:
            await session.run()
        finally:
            self.registry.remove(session.session_id)
            logger.info(
                f"Call session {session.session_id} ended in state {session.state.value} "
                f"({self.registry.active_count} active)"
            )
