"""
Pydantic models for OpenAI Realtime API message structures.

Only the handshake and control messages the relay itself produces or consumes
are modelled here. Relayed media frames are never parsed.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from app.config.constants import DEFAULT_REALTIME_MODEL

SUPPORTED_VOICES = [
    "alloy", "ash", "ballad", "coral", "echo", "sage", "shimmer", "verse",
]


class RealtimeSessionConfig(BaseModel):
    """Configuration used to open one upstream realtime session."""

    model: str = Field(DEFAULT_REALTIME_MODEL, description="Realtime model identifier")
    voice: Optional[str] = Field(None, description="Voice the agent speaks with")
    instructions: Optional[str] = Field(
        None, description="Instructions for the one-shot greeting response"
    )

    @field_validator("model")
    def validate_model(cls, v):
        """Validate that the model identifier is not empty."""
        if not v or not v.strip():
            raise ValueError("Model identifier cannot be empty")
        return v.strip()

    @field_validator("voice")
    def validate_voice(cls, v):
        if v is not None and v not in SUPPORTED_VOICES:
            raise ValueError(f"Unsupported voice: {v}")
        return v


class RealtimeBaseMessage(BaseModel):
    """Base model for Realtime API messages."""
    type: str


class ResponseOptions(BaseModel):
    instructions: str


class ResponseCreateCommand(RealtimeBaseMessage):
    """Asks the model to produce a response, used for the greeting."""
    type: Literal["response.create"] = "response.create"
    response: ResponseOptions


class SessionOptions(BaseModel):
    voice: Optional[str] = None


class SessionUpdateCommand(RealtimeBaseMessage):
    """Updates session parameters right after the session is created."""
    type: Literal["session.update"] = "session.update"
    session: SessionOptions


class RealtimeSession(BaseModel):
    """Session object echoed by the server in session.created."""
    id: str
    model: Optional[str] = None
    voice: Optional[str] = None


class SessionCreatedEvent(RealtimeBaseMessage):
    """First event the server sends on a new connection."""
    type: Literal["session.created"] = "session.created"
    session: RealtimeSession


class RealtimeErrorDetail(BaseModel):
    type: Optional[str] = None
    code: Optional[str] = None
    message: str = ""
    param: Optional[str] = None


class RealtimeErrorMessage(RealtimeBaseMessage):
    """Error message from OpenAI Realtime API."""
    type: Literal["error"] = "error"
    error: RealtimeErrorDetail
    details: Optional[Dict[str, Any]] = None
