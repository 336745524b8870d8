"""
Data models for the call relay.

- realtime_schemas: Pydantic models for the session configuration and the
  control messages exchanged with the OpenAI Realtime API during handshake.
- session_registry: Registry of the relay sessions live in this process.
"""
from app.models.realtime_schemas import (
    RealtimeErrorMessage,
    RealtimeSessionConfig,
    ResponseCreateCommand,
    SessionCreatedEvent,
    SessionUpdateCommand,
)
from app.models.session_registry import SessionRegistry

__all__ = [
    "RealtimeErrorMessage",
    "RealtimeSessionConfig",
    "ResponseCreateCommand",
    "SessionCreatedEvent",
    "SessionUpdateCommand",
    "SessionRegistry",
]
