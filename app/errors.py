"""
Exceptions raised by the call relay.

Every error is scoped to the single call that produced it; none of them is
meant to reach the process level.
"""


class RelayError(Exception):
    """Base class for all relay errors."""


class ConfigurationError(RelayError):
    """Required configuration is missing or invalid at startup."""


class UpstreamUnavailable(RelayError):
    """The realtime provider could not be reached or refused our credentials."""


class UpstreamConfigInvalid(RelayError):
    """The realtime provider rejected the session configuration."""


class ConnectionClosed(RelayError):
    """A send or receive was attempted on a connection that is already closed."""


class UpgradeRejected(RelayError):
    """A WebSocket upgrade arrived on a path we do not serve."""

    def __init__(self, path: str):
        super().__init__(f"Upgrade rejected for path: {path}")
        self.path = path


class TransportFailure(RelayError):
    """Unexpected I/O error on one side of a live relay."""
