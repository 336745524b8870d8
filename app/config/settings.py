"""
Environment-driven settings for the call relay.

Settings are read once at process start. A missing OpenAI key aborts startup:
without it every call would fail at upstream connect time.
"""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

import dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from app.config.constants import (
    DEFAULT_GREETING_INSTRUCTIONS,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_REALTIME_URL,
    DEFAULT_STREAM_PATH,
    DEFAULT_UPSTREAM_CONNECT_TIMEOUT,
    LOGGER_NAME,
)
from app.errors import ConfigurationError
from app.models.realtime_schemas import SUPPORTED_VOICES

logger = logging.getLogger(LOGGER_NAME)

# Environment variable -> Settings field
ENV_FIELDS = {
    "OPENAI_API_KEY": "openai_api_key",
    "OPENAI_REALTIME_MODEL": "realtime_model",
    "OPENAI_REALTIME_URL": "realtime_url",
    "OPENAI_VOICE": "voice",
    "GREETING_INSTRUCTIONS": "greeting_instructions",
    "STREAM_PATH": "stream_path",
    "PUBLIC_HOST": "public_host",
    "HOST": "host",
    "PORT": "port",
    "UPSTREAM_CONNECT_TIMEOUT": "upstream_connect_timeout",
    "TWILIO_ACCOUNT_SID": "twilio_account_sid",
    "TWILIO_AUTH_TOKEN": "twilio_auth_token",
}

# Credentials the relay never uses; their absence is only reported
UNUSED_CREDENTIALS = (
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE",
)


class Settings(BaseModel):
    """Process-wide configuration."""

    openai_api_key: str = Field(..., description="API key for the OpenAI Realtime API")
    realtime_model: str = Field(DEFAULT_REALTIME_MODEL)
    realtime_url: str = Field(DEFAULT_REALTIME_URL)
    voice: Optional[str] = Field(None, description="Voice used by the agent")
    greeting_instructions: Optional[str] = Field(DEFAULT_GREETING_INSTRUCTIONS)
    stream_path: str = Field(DEFAULT_STREAM_PATH)
    public_host: Optional[str] = Field(
        None, description="Host used in the stream URL instead of the request Host header"
    )
    host: str = Field(DEFAULT_HOST)
    port: int = Field(DEFAULT_PORT, gt=0, lt=65536)
    upstream_connect_timeout: float = Field(DEFAULT_UPSTREAM_CONNECT_TIMEOUT, gt=0)

    # Read so their absence is reported; the relay itself never calls Twilio
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None

    @field_validator("openai_api_key")
    def validate_api_key(cls, v):
        """Reject blank API keys."""
        if not v or not v.strip():
            raise ValueError("OPENAI_API_KEY must not be empty")
        return v.strip()

    @field_validator("voice")
    def validate_voice(cls, v):
        if v is not None and v not in SUPPORTED_VOICES:
            raise ValueError(f"OPENAI_VOICE must be one of: {', '.join(SUPPORTED_VOICES)}")
        return v

    @field_validator("stream_path")
    def validate_stream_path(cls, v):
        """The stream path must be absolute."""
        if not v.startswith("/"):
            raise ValueError("STREAM_PATH must start with '/'")
        return v

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (used by tests)

        Returns:
            Settings: Validated settings

        Raises:
            ConfigurationError: If a required value is missing or invalid
        """
        if environ is None:
            env_path = Path(".") / ".env"
            if env_path.exists():
                dotenv.load_dotenv(env_path)
            environ = os.environ

        values = {
            field: environ[name]
            for name, field in ENV_FIELDS.items()
            if environ.get(name) not in (None, "")
        }

        if "openai_api_key" not in values:
            logger.error("Missing OPENAI_API_KEY")
            raise ConfigurationError("OPENAI_API_KEY environment variable not set")

        try:
            settings = cls(**values)
        except ValidationError as e:
            logger.error(f"Invalid configuration: {e}")
            raise ConfigurationError(str(e)) from e

        for name in UNUSED_CREDENTIALS:
            if name not in environ or not environ[name]:
                logger.warning(f"Missing {name}")

        return settings
