"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for configuration values and making it easier to
maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "call_relay"

# Default OpenAI model and endpoint for the Realtime API
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview-2024-12-17"
DEFAULT_REALTIME_URL = "wss://api.openai.com/v1/realtime"

# Spoken by the agent as soon as the upstream session is open
DEFAULT_GREETING_INSTRUCTIONS = "Say: 'Hi, you're through to Tradesmen AI. How can I help?'"

# Path the telephony provider opens its media stream on
DEFAULT_STREAM_PATH = "/stream"

# Server defaults
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 10000

# Upstream WebSocket tuning
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_MAX_QUEUE = 32  # Small queue to prevent buffering
WS_PING_INTERVAL = 5  # seconds
WS_PING_TIMEOUT = 10  # seconds

# Timeouts (seconds)
DEFAULT_UPSTREAM_CONNECT_TIMEOUT = 10.0
CLOSE_TIMEOUT = 5.0

# Realtime API event types
EVENT_SESSION_CREATED = "session.created"
EVENT_ERROR = "error"
