"""
FastAPI server relaying Twilio Media Streams to the OpenAI Realtime API.

The HTTP surface is deliberately thin: a TwiML webhook that points the call at
the media stream, a health check, and the stream WebSocket itself. Everything
interesting happens in the per-call relay session behind the stream endpoint.

The app is built by create_app() so that settings and the upstream client are
constructed once at startup and injected, never read from module globals.
"""

import logging
from typing import Optional
from xml.sax.saxutils import escape

from fastapi import FastAPI, Request, Response, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from app.bot.realtime_api import RealtimeSessionClient
from app.config.constants import LOGGER_NAME
from app.config.settings import Settings
from app.models.realtime_schemas import RealtimeSessionConfig
from app.upgrade_router import UpgradeRouter
from app.websocket_manager import WebSocketManager

logger = logging.getLogger(LOGGER_NAME)

APP_TITLE = "Call Relay"
APP_VERSION = "1.0.0"


def build_stream_twiml(stream_url: str) -> str:
    """TwiML telling the provider to open a bidirectional media stream."""
    url = escape(stream_url, {'"': "&quot;"})
    return (
        "<?xml version=\"1.0\" encoding=\"UTF-8\"?>"
        "<Response>"
        "<Connect>"
        f"<Stream url=\"{url}\" />"
        "</Connect>"
        "</Response>"
    )


def create_app(settings: Optional[Settings] = None, upstream_client=None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use; read from the environment when omitted
        upstream_client: Client used to open realtime sessions; a
            RealtimeSessionClient is built from the settings when omitted

    Raises:
        ConfigurationError: If settings are read from the environment and are incomplete
    """
    if settings is None:
        settings = Settings.from_env()

    if upstream_client is None:
        upstream_client = RealtimeSessionClient(
            settings.openai_api_key,
            base_url=settings.realtime_url,
            connect_timeout=settings.upstream_connect_timeout,
        )

    session_config = RealtimeSessionConfig(
        model=settings.realtime_model,
        voice=settings.voice,
        instructions=settings.greeting_instructions,
    )
    websocket_manager = WebSocketManager(upstream_client, session_config)

    app = FastAPI(
        title=APP_TITLE,
        description="Relays Twilio Media Streams to the OpenAI Realtime API",
        version=APP_VERSION,
    )
    app.state.settings = settings
    app.state.websocket_manager = websocket_manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(UpgradeRouter, stream_path=settings.stream_path)

    @app.websocket(settings.stream_path)
    async def media_stream(websocket: WebSocket):
        """Media stream opened by the telephony provider for one call."""
        await websocket_manager.handle_websocket(websocket)

    @app.post("/voice")
    async def voice_webhook(request: Request) -> Response:
        """Answer an inbound call by connecting it to the media stream."""
        host = settings.public_host or request.headers.get("host", "")
        stream_url = f"wss://{host}{settings.stream_path}"
        logger.info(f"Incoming call, streaming to {stream_url}")
        return Response(content=build_stream_twiml(stream_url), media_type="text/xml")

    @app.get("/health")
    async def health_check():
        """Liveness probe for the hosting platform."""
        return {
            "status": "healthy",
            "active_sessions": websocket_manager.registry.active_count,
        }

    @app.get("/")
    async def root():
        return {
            "name": APP_TITLE,
            "version": APP_VERSION,
            "endpoints": {
                "/voice": "TwiML webhook for inbound calls",
                settings.stream_path: "WebSocket endpoint for the telephony media stream",
                "/health": "Health check endpoint",
            },
        }

    logger.info(f"Application created, media stream on {settings.stream_path}")
    return app


if __name__ == "__main__":
    import uvicorn

    from app.config.logging_config import configure_logging

    configure_logging()
    env_settings = Settings.from_env()
    uvicorn.run(create_app(env_settings), host=env_settings.host, port=env_settings.port, http="h11")
