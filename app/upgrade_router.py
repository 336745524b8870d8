"""
ASGI middleware guarding WebSocket upgrades.

Only the media stream path may be upgraded. Any other WebSocket request is
refused before the handshake completes: nothing is accepted and no body is
sent. HTTP and lifespan traffic pass straight through.
"""

import logging

from app.config.constants import DEFAULT_STREAM_PATH, LOGGER_NAME
from app.errors import UpgradeRejected

logger = logging.getLogger(LOGGER_NAME)

# Policy violation; before accept the server turns this into a bare refusal
REJECT_CLOSE_CODE = 1008


class UpgradeRouter:
    """Routes WebSocket upgrades on the stream path to the app and refuses the rest."""

    def __init__(self, app, stream_path: str = DEFAULT_STREAM_PATH):
        self.app = app
        self.stream_path = stream_path

    def check(self, path: str) -> None:
        """
        Raises:
            UpgradeRejected: If the path is not the stream path
        """
        if path != self.stream_path:
            raise UpgradeRejected(path)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "websocket":
            await self.app(scope, receive, send)
            return

        try:
            self.check(scope.get("path", ""))
        except UpgradeRejected as e:
            client = scope.get("client")
            logger.warning(f"{e} (client: {client})")
            await send({"type": "websocket.close", "code": REJECT_CLOSE_CODE})
            return

        await self.app(scope, receive, send)
